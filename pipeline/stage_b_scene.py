"""Stage B: Scene & Object Recognition — list the visual clues in the media.

One Gemini call with every media part attached. The reply's `observations`
feeds the hypothesis stage as text (a list of clues becomes one per line);
a reply without it gets a placeholder.
"""
import logging

from models.media import MediaPart
from pipeline.gateway import ModelGateway, ProviderConfig, ProviderKind
from settings import Settings
from utils.json_extract import extract_json, text_field

logger = logging.getLogger(__name__)

NO_OBSERVATIONS = "No specific observations were made."

_PROMPT = """\
Analyze the provided media and identify every visual clue that could reveal where it was taken.
List objects, landmarks, text (transcribe it exactly), architectural styles, road markings and
signage, vehicles, clothing, flora, fauna, terrain, weather and any other distinctive features.
Be detailed and thorough.
Output your findings as a JSON object with a single key 'observations', which is a rich,
descriptive string."""


def run(settings: Settings, gateway: ModelGateway, media: list[MediaPart]) -> str:
    """Return the scene observations text."""
    config = ProviderConfig(kind=ProviderKind.GEMINI, model=settings.primary_model)
    reply = gateway.invoke_model(config, _PROMPT, media)
    parsed = extract_json(reply.text)

    observations = text_field(parsed, "observations")
    if observations is None:
        logger.warning("Scene recognition reply had no 'observations'; using placeholder.")
        observations = NO_OBSERVATIONS

    logger.info("Stage B complete")
    logger.info("  Observations: %d chars", len(observations))
    return observations
