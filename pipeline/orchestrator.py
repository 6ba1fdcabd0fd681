"""Pipeline orchestrator — runs stages A..G strictly in sequence.

Each stage's prompt embeds the previous stage's parsed output, so nothing
runs in parallel. Every status change goes through ``models.stages.transition``
and the resulting snapshot is handed to the progress callback:

    A ingest -> B scene -> C hypotheses -> D verify -> E synthesis -> F grounding -> G compile

A stage is marked running before it does any work and completed only once
its result exists. Any exception marks the in-flight stage failed, is
reported through the callback, and propagates unchanged to the caller;
later stages stay pending and no partial dossier is returned.
"""
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Callable

from models.dossier import AnalysisResult
from models.stages import PipelineStage, StageStatus, default_stages, transition
from pipeline import (
    stage_a_ingest,
    stage_b_scene,
    stage_c_hypotheses,
    stage_d_verify,
    stage_e_synthesis,
    stage_f_grounding,
    stage_g_compile,
)
from pipeline.gateway import ModelGateway, ProviderKind
from settings import Settings

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[list[PipelineStage]], None]


class StageTracker:
    """Owns the stage list of one run and publishes a snapshot after every change."""

    def __init__(self, stages: list[PipelineStage], on_progress: ProgressCallback | None = None):
        self._stages = list(stages)
        self._on_progress = on_progress

    @property
    def stages(self) -> list[PipelineStage]:
        return list(self._stages)

    def set_status(self, stage_id: str, status: StageStatus) -> None:
        self._stages = transition(self._stages, stage_id, status)
        if self._on_progress is not None:
            self._on_progress(list(self._stages))

    @contextmanager
    def stage(self, stage_id: str):
        self.set_status(stage_id, StageStatus.RUNNING)
        try:
            yield
        except Exception as exc:
            logger.error("Stage %s failed: %s", stage_id, exc)
            self.set_status(stage_id, StageStatus.FAILED)
            raise
        self.set_status(stage_id, StageStatus.COMPLETED)


def run_analysis(
    path: Path,
    on_progress: ProgressCallback | None = None,
    initial_stages: list[PipelineStage] | None = None,
    *,
    mime_type: str | None = None,
    settings: Settings | None = None,
    gateway: ModelGateway | None = None,
) -> AnalysisResult:
    """Run the full geolocation pipeline on one image or video file.

    Returns the dossier. Raises MediaError, UpstreamError or
    MalformedModelOutputError (all GeoAgentError) on failure; the last
    snapshot passed to `on_progress` shows which stage failed.
    """
    settings = settings or Settings()
    gateway = gateway or ModelGateway(settings)
    tracker = StageTracker(initial_stages or default_stages(), on_progress)

    logger.info("=== Geolocating %s ===", Path(path).name)

    with tracker.stage("A"):
        media = stage_a_ingest.run(settings, path, mime_type)

    # Fail before stage B starts rather than inside it.
    gateway.require_credentials(ProviderKind.GEMINI)

    with tracker.stage("B"):
        observations = stage_b_scene.run(settings, gateway, media)

    with tracker.stage("C"):
        hypotheses = stage_c_hypotheses.run(settings, gateway, observations)

    with tracker.stage("D"):
        verification = stage_d_verify.run(settings, gateway, hypotheses, media)

    with tracker.stage("E"):
        synthesis = stage_e_synthesis.run(
            settings, gateway, observations, hypotheses, verification, media
        )

    with tracker.stage("F"):
        grounding = stage_f_grounding.run(settings, gateway, synthesis.location_name)

    with tracker.stage("G"):
        dossier = stage_g_compile.run(
            settings, synthesis, grounding, observations, hypotheses, verification
        )

    logger.info("=== Done → %s (confidence %.0f) ===", dossier.location_name, dossier.confidence)
    return dossier
