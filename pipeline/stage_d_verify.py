"""Stage D: Visual Verification — a second vision model checks the hypotheses.

OpenRouter call to `settings.verification_model` with the media attached.
"""
import logging

from models.dossier import Hypothesis, VerificationReport
from models.media import MediaPart
from pipeline.gateway import ModelGateway, ProviderConfig, ProviderKind
from pipeline.stage_c_hypotheses import format_hypotheses
from settings import Settings
from utils.json_extract import extract_json, text_field

logger = logging.getLogger(__name__)

NO_REASONING = "No reasoning provided by the verification model."

_PROMPT = """\
You are a visual verification agent. Given the following media and a list of location hypotheses,
your job is to visually analyze the media and determine which hypothesis is the most plausible.
Provide your own independent reasoning for your choice.
Hypotheses:

{hypotheses}

Output your findings as a JSON object with a single key: 'reasoning'. This reasoning should clearly
state which location you confirm and why, based on visual evidence."""


def run(
    settings: Settings,
    gateway: ModelGateway,
    hypotheses: list[Hypothesis],
    media: list[MediaPart],
) -> VerificationReport:
    config = ProviderConfig(kind=ProviderKind.OPENROUTER, model=settings.verification_model)
    prompt = _PROMPT.format(hypotheses=format_hypotheses(hypotheses))
    reply = gateway.invoke_model(config, prompt, media)
    parsed = extract_json(reply.text)

    reasoning = text_field(parsed, "reasoning")
    if reasoning is None:
        logger.warning("Verification reply had no 'reasoning'; using placeholder.")
        reasoning = NO_REASONING

    logger.info("Stage D complete (%s)", settings.verification_model)
    return VerificationReport(reasoning=reasoning, report=parsed)
