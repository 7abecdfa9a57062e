"""
Timing script generation for the slideshow module.

Builds the concat-demuxer list that tells FFmpeg how long to show each frame.
"""
from typing import List, Sequence

from shared.errors import ValidationError
from shared.models.slideshow import Frame
from .staging import frame_name


def format_duration(seconds: float) -> str:
    """
    Render a duration the way the timing script expects it.

    Integral values drop the trailing ".0" (2.0 -> "2"); everything else uses
    the shortest float repr (0.5 -> "0.5").
    """
    value = float(seconds)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def build_script(names: Sequence[str], durations: Sequence[float]) -> str:
    """
    Build a timing script from staged frame names and per-frame durations.

    Every entry, including the last, declares its duration. The concat demuxer
    ignores the final duration unless it is present, so omitting it would
    truncate the last frame.

    Args:
        names: Staged frame names in display order
        durations: Seconds per frame, same length as names

    Returns:
        Newline-separated script text ending with a newline

    Raises:
        ValidationError: If inputs are empty, mismatched or a duration is not positive
    """
    if not names:
        raise ValidationError("Timing script needs at least one frame")
    if len(names) != len(durations):
        raise ValidationError(
            f"Frame/duration count mismatch: {len(names)} names, {len(durations)} durations"
        )

    lines: List[str] = []
    for name, duration in zip(names, durations):
        if duration <= 0:
            raise ValidationError(f"Duration for {name} must be positive, got {duration}")
        lines.append(f"file {name}")
        lines.append(f"duration {format_duration(duration)}")

    return "\n".join(lines) + "\n"


def frame_durations(frames: Sequence[Frame], duration_per_frame: float) -> List[float]:
    """Effective on-screen duration for each frame."""
    return [
        frame.display_duration if frame.display_duration is not None else duration_per_frame
        for frame in frames
    ]


def build_script_for_frames(frames: Sequence[Frame], duration_per_frame: float) -> str:
    """
    Build the timing script for a frame sequence.

    Args:
        frames: Frames in display order (never re-sorted)
        duration_per_frame: Default seconds per frame

    Returns:
        Timing script text
    """
    total = len(frames)
    names = [frame_name(position, frame.extension, total) for position, frame in enumerate(frames)]
    return build_script(names, frame_durations(frames, duration_per_frame))
