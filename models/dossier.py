"""Result models: hypotheses, citations and the final dossier.

Field names are snake_case in Python and camelCase on the wire, since the
models exchange JSON with both the language models and the UI. Dump with
``model_dump(by_alias=True)`` / ``model_dump_json(by_alias=True)``.
"""
import math
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Hypothesis(BaseModel):
    """One candidate location from stage C. Advisory: coordinates may be missing."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    location_name: str
    latitude: float | None = None
    longitude: float | None = None
    reasoning: str = ""

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def unreadable_coordinate_is_none(cls, v):
        # "48.8584 N", "unknown" etc. keep the hypothesis, just without coordinates
        if v is None or isinstance(v, bool):
            return None
        try:
            value = float(v)
        except (TypeError, ValueError):
            return None
        return value if math.isfinite(value) else None


class GroundingChunk(BaseModel):
    model_config = _CAMEL

    type: Literal["web", "maps"]
    uri: str
    title: str


class IntermediateStep(BaseModel):
    model_config = _CAMEL

    model: str
    reasoning: str


class SynthesisResult(BaseModel):
    """Stage E's answer. Load-bearing: every field must be present and numeric where expected."""

    model_config = _CAMEL

    location_name: str
    latitude: float = Field(ge=-90.0, le=90.0, allow_inf_nan=False)
    longitude: float = Field(ge=-180.0, le=180.0, allow_inf_nan=False)
    reasoning: str
    confidence: float = Field(ge=0.0, le=100.0, allow_inf_nan=False)

    @field_serializer("confidence")
    def whole_confidence_as_int(self, v: float) -> float | int:
        return int(v) if v.is_integer() else v


class AnalysisResult(SynthesisResult):
    """The dossier returned by a successful run."""

    grounding: list[GroundingChunk] = Field(default_factory=list)
    intermediate_steps: list[IntermediateStep] = Field(default_factory=list)


class VerificationReport(BaseModel):
    """Stage D output: the verifier's reasoning plus its full parsed reply."""

    reasoning: str
    report: dict = Field(default_factory=dict)
