"""Stage C: Hypothesis Generation — candidate locations from the observations.

Text-only Gemini call (no media). The reply's `hypotheses` array is advisory:
a missing array becomes an empty list, entries without a location name are
dropped, and unreadable coordinates become None.
"""
import json
import logging

from pydantic import ValidationError

from models.dossier import Hypothesis
from pipeline.gateway import ModelGateway, ProviderConfig, ProviderKind
from settings import Settings
from utils.json_extract import extract_json

logger = logging.getLogger(__name__)

_PROMPT = """\
Based on the following observations, generate up to {max_hypotheses} potential geographic locations,
most plausible first. For each hypothesis, provide a location name, latitude, longitude, and reasoning.
Observations: {observations}
Output your result in a structured JSON format inside a JSON markdown block. The JSON object must have
a key 'hypotheses', which is an array of objects, each with 'locationName', 'latitude', 'longitude',
and 'reasoning' keys."""


def run(settings: Settings, gateway: ModelGateway, observations: str) -> list[Hypothesis]:
    """Return the hypotheses in the order the model ranked them."""
    config = ProviderConfig(kind=ProviderKind.GEMINI, model=settings.primary_model)
    prompt = _PROMPT.format(max_hypotheses=settings.max_hypotheses, observations=observations)
    reply = gateway.invoke_model(config, prompt)
    parsed = extract_json(reply.text)

    hypotheses = _parse_hypotheses(parsed.get("hypotheses"))

    logger.info("Stage C complete")
    for h in hypotheses:
        logger.info("  %s (%s, %s)", h.location_name, h.latitude, h.longitude)
    return hypotheses


def format_hypotheses(hypotheses: list[Hypothesis]) -> str:
    """Pretty JSON used when hypotheses are embedded in later prompts and the dossier."""
    return json.dumps(
        [h.model_dump(by_alias=True) for h in hypotheses],
        indent=2,
        ensure_ascii=False,
    )


def _parse_hypotheses(raw) -> list[Hypothesis]:
    if not isinstance(raw, list):
        if raw is not None:
            logger.warning("'hypotheses' is %s, not a list; ignoring.", type(raw).__name__)
        return []

    hypotheses: list[Hypothesis] = []
    for index, item in enumerate(raw):
        try:
            hypotheses.append(Hypothesis.model_validate(item))
        except ValidationError as exc:
            logger.warning("Dropping hypothesis #%d: %s", index + 1, exc.errors()[0]["msg"])
    return hypotheses
