"""Pipeline stage model and the pure status-transition function.

The orchestrator owns one list of stages per run. It never mutates a stage in
place: every status change goes through ``transition()``, which validates the
move and returns a fresh list. Stages are frozen, so a snapshot handed to a
progress reporter cannot be changed behind the orchestrator's back.
"""
from enum import Enum

from pydantic import BaseModel, ConfigDict


class StageStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


# Allowed moves. Terminal states have no outgoing edges.
_ALLOWED = {
    StageStatus.PENDING: frozenset({StageStatus.RUNNING}),
    StageStatus.RUNNING: frozenset({StageStatus.COMPLETED, StageStatus.FAILED}),
    StageStatus.COMPLETED: frozenset(),
    StageStatus.FAILED: frozenset(),
}


class PipelineStage(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str
    status: StageStatus = StageStatus.PENDING


class StageTransitionError(ValueError):
    """Raised for a status change that would break stage ordering."""


_STAGE_DEFINITIONS = (
    ("A", "Stage A: Media Ingestion",
     "Reading the image, or sampling still frames from the video."),
    ("B", "Stage B: Scene & Object Recognition",
     "Listing landmarks, text, architecture, vegetation and other visual clues."),
    ("C", "Stage C: Hypothesis Generation",
     "Proposing candidate locations from the observed clues."),
    ("D", "Stage D: Visual Verification",
     "A second vision model checks the candidates against the media."),
    ("E", "Stage E: Synthesis & Deep Reasoning",
     "Combining all evidence into a single location with a confidence score."),
    ("F", "Stage F: Grounding",
     "Collecting web and map sources for the chosen location."),
    ("G", "Stage G: Dossier Compilation",
     "Assembling the final result with sources and intermediate reasoning."),
)

STAGE_IDS = tuple(stage_id for stage_id, _, _ in _STAGE_DEFINITIONS)


def default_stages() -> list[PipelineStage]:
    """Fresh stage list for one run, every stage pending."""
    return [
        PipelineStage(id=stage_id, name=name, description=description)
        for stage_id, name, description in _STAGE_DEFINITIONS
    ]


def transition(
    stages: list[PipelineStage],
    stage_id: str,
    new_status: StageStatus,
) -> list[PipelineStage]:
    """Return a new stage list with `stage_id` moved to `new_status`.

    Raises StageTransitionError if the stage is unknown, the move is not
    pending -> running -> completed|failed, or the stage would start running
    before every earlier stage has completed.
    """
    index = next((i for i, s in enumerate(stages) if s.id == stage_id), None)
    if index is None:
        raise StageTransitionError(f"Unknown stage id: {stage_id!r}")

    current = stages[index].status
    if new_status not in _ALLOWED[current]:
        raise StageTransitionError(
            f"Stage {stage_id}: cannot move from {current.value} to {new_status.value}"
        )

    if new_status is StageStatus.RUNNING:
        blocking = [s.id for s in stages[:index] if s.status is not StageStatus.COMPLETED]
        if blocking:
            raise StageTransitionError(
                f"Stage {stage_id} cannot start before {', '.join(blocking)} completed"
            )

    updated = list(stages)
    updated[index] = stages[index].model_copy(update={"status": new_status})
    return updated


def running_stage(stages: list[PipelineStage]) -> PipelineStage | None:
    return next((s for s in stages if s.status is StageStatus.RUNNING), None)
