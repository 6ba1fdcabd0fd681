"""Stage F: Grounding — web and map sources for the chosen location.

Gemini call with Google Search and Google Maps tools enabled. Only the
grounding metadata is used; the reply text is ignored. No sources is fine.
"""
import logging
from typing import Any

from models.dossier import GroundingChunk
from pipeline.gateway import ModelGateway, ProviderConfig, ProviderKind
from settings import Settings

logger = logging.getLogger(__name__)

_DEFAULT_TITLES = {
    "web": "Web Search Result",
    "maps": "Google Maps Result",
}


def run(settings: Settings, gateway: ModelGateway, location_name: str) -> list[GroundingChunk]:
    config = ProviderConfig(
        kind=ProviderKind.GEMINI,
        model=settings.primary_model,
        search=True,
        maps=True,
    )
    reply = gateway.invoke_model(config, f"Find sources for the location: {location_name}")
    chunks = to_grounding_chunks(reply.grounding)

    logger.info("Stage F complete")
    logger.info("  Sources: %d", len(chunks))
    return chunks


def to_grounding_chunks(records: list[dict[str, Any]]) -> list[GroundingChunk]:
    """Map raw provider chunks ({"web": {...}} or {"maps": {...}}) in order.

    Records of any other kind, or without a URI, are skipped.
    """
    chunks: list[GroundingChunk] = []
    for record in records:
        kind = next((k for k in ("web", "maps") if record.get(k)), None)
        if kind is None:
            logger.debug("Skipping grounding record without web/maps source: %s", list(record))
            continue
        source = record[kind]
        uri = source.get("uri")
        if not uri:
            logger.debug("Skipping %s grounding record without uri", kind)
            continue
        chunks.append(GroundingChunk(
            type=kind,
            uri=uri,
            title=source.get("title") or _DEFAULT_TITLES[kind],
        ))
    return chunks
