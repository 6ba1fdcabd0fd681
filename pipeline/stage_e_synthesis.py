"""Stage E: Synthesis & Deep Reasoning — one final answer from all evidence.

OpenRouter call to `settings.synthesis_model` with the media attached. The
reply seeds the dossier directly, so nothing is substituted: a reply that
does not validate as a SynthesisResult aborts the run.
"""
import json
import logging

from pydantic import ValidationError

from models.dossier import Hypothesis, SynthesisResult, VerificationReport
from models.media import MediaPart
from pipeline.errors import MalformedModelOutputError
from pipeline.gateway import ModelGateway, ProviderConfig, ProviderKind
from pipeline.stage_c_hypotheses import format_hypotheses
from settings import Settings
from utils.json_extract import extract_json

logger = logging.getLogger(__name__)

_PROMPT = """\
You are a master geo-analyst. Your task is to synthesize all available intelligence to produce a
final, definitive conclusion.

Initial Scene Observations:
{observations}

Location Hypotheses Generated:
{hypotheses}

Visual Verification Report:
{verification}

Based on all this evidence, provide a final, highly accurate determination. Output your result as a
single JSON object. This object MUST have: 'locationName', 'latitude' (a number), 'longitude'
(a number), 'reasoning' (your final, synthesized justification), and 'confidence' (a score from
0 to 100)."""


def run(
    settings: Settings,
    gateway: ModelGateway,
    observations: str,
    hypotheses: list[Hypothesis],
    verification: VerificationReport,
    media: list[MediaPart],
) -> SynthesisResult:
    config = ProviderConfig(kind=ProviderKind.OPENROUTER, model=settings.synthesis_model)
    prompt = _PROMPT.format(
        observations=observations,
        hypotheses=format_hypotheses(hypotheses),
        verification=json.dumps(verification.report, indent=2, ensure_ascii=False),
    )
    reply = gateway.invoke_model(config, prompt, media)
    parsed = extract_json(reply.text)

    try:
        result = SynthesisResult.model_validate(parsed)
    except ValidationError as exc:
        fields = ", ".join(".".join(str(p) for p in e["loc"]) for e in exc.errors())
        raise MalformedModelOutputError(
            f"Synthesis result is missing or has invalid fields: {fields}", reply.text
        ) from exc

    logger.info("Stage E complete (%s)", settings.synthesis_model)
    logger.info(
        "  %s (%.4f, %.4f) confidence %.0f",
        result.location_name, result.latitude, result.longitude, result.confidence,
    )
    return result
