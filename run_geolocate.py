#!/usr/bin/env python3
"""Geolocate an image or video, or chat with the Geo-Agent assistant.

Usage:
    python run_geolocate.py photo.jpg                     # print the dossier as JSON
    python run_geolocate.py clip.mp4 --frames 8           # sample 8 video frames
    python run_geolocate.py upload.bin --mime image/png    # override the declared type
    python run_geolocate.py photo.jpg --output result.json
    python run_geolocate.py --chat                        # interactive assistant chat
"""
import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent))

from pydantic import ValidationError

from models.stages import PipelineStage, StageStatus
from pipeline.chat import GREETING, ChatSession
from pipeline.errors import GeoAgentError
from pipeline.orchestrator import run_analysis
from settings import Settings

logger = logging.getLogger("run_geolocate")

_STATUS_MARKS = {
    StageStatus.PENDING: " ",
    StageStatus.RUNNING: "…",
    StageStatus.COMPLETED: "✓",
    StageStatus.FAILED: "✗",
}


class LoggingProgressReporter:
    """Logs each stage whose status changed since the previous snapshot."""

    def __init__(self):
        self._seen: dict[str, StageStatus] = {}

    def __call__(self, stages: list[PipelineStage]) -> None:
        for stage in stages:
            if self._seen.get(stage.id) != stage.status:
                self._seen[stage.id] = stage.status
                if stage.status is not StageStatus.PENDING:
                    logger.info("[%s] %s: %s", _STATUS_MARKS[stage.status], stage.name, stage.status.value)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("path", nargs="?", type=Path, help="Image or video file to geolocate")
    parser.add_argument("--mime", dest="mime_type", default=None,
                        help="Declared MIME type (default: guessed from the file name)")
    parser.add_argument("--frames", type=int, default=None,
                        help="Number of frames to sample from a video")
    parser.add_argument("--output", type=Path, default=None,
                        help="Write the dossier JSON here instead of stdout")
    parser.add_argument("--chat", action="store_true", help="Start an interactive chat instead")
    return parser


def _analyse(args: argparse.Namespace, settings: Settings) -> int:
    try:
        dossier = run_analysis(
            args.path,
            on_progress=LoggingProgressReporter(),
            mime_type=args.mime_type,
            settings=settings,
        )
    except GeoAgentError as exc:
        logger.error("Analysis failed: %s", exc)
        return 1

    payload = dossier.model_dump_json(by_alias=True, indent=2)
    if args.output:
        args.output.write_text(payload, encoding="utf-8")
        logger.info("Dossier written → %s", args.output)
    else:
        print(payload)
    return 0


def _chat(settings: Settings) -> int:
    session = ChatSession(settings)
    print(GREETING)
    while True:
        try:
            text = input("> ")
        except EOFError:
            break
        if not text.strip():
            break
        try:
            print(session.send(text))
        except GeoAgentError as exc:
            print(f"Error: {exc}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if not args.chat and args.path is None:
        parser.error("a file path is required unless --chat is given")

    overrides = {"video_frame_count": args.frames} if args.frames is not None else {}
    try:
        settings = Settings(**overrides)
    except ValidationError as exc:
        parser.error(f"invalid configuration: {exc.errors()[0]['msg']}")

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
        datefmt="%H:%M:%S",
    )

    if args.chat:
        return _chat(settings)
    return _analyse(args, settings)


if __name__ == "__main__":
    sys.exit(main())
