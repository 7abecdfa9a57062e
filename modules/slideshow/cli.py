#!/usr/bin/env python3
"""
Create a slideshow video from the command line.

Usage:
    slideshow a.png b.png c.png -o slideshow.mp4
    slideshow *.jpg --audio song.mp3 --duration 2 --fps 30 --format webm -o out.webm
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from shared.config import settings
from shared.errors import PipelineError
from shared.logging import get_logger
from shared.models.slideshow import AudioTrack, Frame, JobSettings

from .lifecycle import EngineLifecycle
from .process import CompositionPipeline

logger = get_logger("slideshow.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="slideshow",
        description="Turn an ordered list of images into a video"
    )
    parser.add_argument("images", nargs="+", type=Path, help="Image files, in display order")
    parser.add_argument("-o", "--output", type=Path, required=True, help="Output video file")
    parser.add_argument("--audio", type=Path, help="Optional audio track (trimmed to video length)")
    parser.add_argument(
        "--duration",
        type=float,
        default=settings.default_duration_per_frame,
        help="Seconds per image (default: %(default)s)"
    )
    parser.add_argument(
        "--fps",
        type=int,
        default=settings.default_frame_rate,
        help="Output frame rate (default: %(default)s)"
    )
    parser.add_argument(
        "--format",
        choices=["mp4", "webm", "avi"],
        default=settings.default_output_format,
        help="Output format (default: %(default)s)"
    )
    return parser


def load_frames(paths: List[Path]) -> List[Frame]:
    """Read image files into frames, keeping the given order."""
    return [
        Frame(index=i, data=path.read_bytes(), extension=path.suffix or "png")
        for i, path in enumerate(paths)
    ]


def print_progress(percent: int) -> None:
    sys.stderr.write(f"\rEncoding: {percent:3d}%")
    sys.stderr.flush()


async def run(args: argparse.Namespace) -> int:
    try:
        frames = load_frames(args.images)
        audio = None
        if args.audio:
            audio = AudioTrack(data=args.audio.read_bytes(), extension=args.audio.suffix or "mp3")
        job_settings = JobSettings(
            duration_per_frame=args.duration,
            frame_rate=args.fps,
            output_format=args.format
        )
    except (OSError, ValueError) as e:
        print(f"❌ Invalid input: {e}", file=sys.stderr)
        return 2

    lifecycle = EngineLifecycle()
    try:
        pipeline = CompositionPipeline(lifecycle)
        result = await pipeline.run(frames, job_settings, audio=audio, on_progress=print_progress)
    except PipelineError as e:
        print(f"\n❌ {type(e).__name__}: {e.message}", file=sys.stderr)
        return 1
    finally:
        await lifecycle.shutdown()

    args.output.write_bytes(result.data)
    print(
        f"\n✅ Wrote {args.output} ({result.size_mb:.2f} MB, "
        f"{result.video_duration:.1f}s, {result.mime_type})"
    )
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
