"""Stage G: Dossier Compilation — merge everything into the AnalysisResult.

Pure local composition, no model call. `intermediate_steps` records the
reasoning of the stages that ran before synthesis, in execution order; the
synthesis reasoning itself is the dossier's top-level `reasoning`.
"""
import logging

from models.dossier import (
    AnalysisResult,
    GroundingChunk,
    Hypothesis,
    IntermediateStep,
    SynthesisResult,
    VerificationReport,
)
from pipeline.stage_c_hypotheses import format_hypotheses
from settings import Settings

logger = logging.getLogger(__name__)


def run(
    settings: Settings,
    synthesis: SynthesisResult,
    grounding: list[GroundingChunk],
    observations: str,
    hypotheses: list[Hypothesis],
    verification: VerificationReport,
) -> AnalysisResult:
    steps = [
        IntermediateStep(
            model=f"Scene Recognition ({settings.primary_model})",
            reasoning=observations,
        ),
        IntermediateStep(
            model=f"Hypothesis Generation ({settings.primary_model})",
            reasoning=format_hypotheses(hypotheses),
        ),
        IntermediateStep(
            model=f"Visual Verification ({settings.verification_model})",
            reasoning=verification.reasoning,
        ),
    ]

    dossier = AnalysisResult(
        **synthesis.model_dump(),
        grounding=list(grounding),
        intermediate_steps=steps,
    )

    logger.info("Stage G complete → %s", dossier.location_name)
    logger.info("  Sources: %d, intermediate steps: %d", len(dossier.grounding), len(steps))
    return dossier
