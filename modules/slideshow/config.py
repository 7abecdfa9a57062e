"""
Slideshow configuration.

Centralized configuration for staged names, FFmpeg settings, and output parameters.
"""
from typing import Dict, Tuple

# Staged names (reserved names use stems that never collide with frame names)
FRAME_NAME_PREFIX = "img"
FRAME_INDEX_WIDTH = 3  # img000.png, img001.png, ...
SCRIPT_NAME = "list.txt"
AUDIO_NAME_STEM = "audio"
AUDIO_NAME = f"{AUDIO_NAME_STEM}.mp3"  # default when the upload keeps no extension
OUTPUT_NAME_STEM = "out"

# Video output settings (portrait letterbox canvas)
OUTPUT_WIDTH = 1080
OUTPUT_HEIGHT = 1920
OUTPUT_PIXEL_FORMAT = "yuv420p"

# Codec selection per output format when an audio track is muxed in
FORMAT_CODECS: Dict[str, Tuple[str, str]] = {
    "mp4": ("libx264", "aac"),
    "webm": ("libvpx-vp9", "libopus"),
    "avi": ("mpeg4", "libmp3lame"),
}

# Engine settings
FFMPEG_BINARY_NAME = "ffmpeg"
FFMPEG_VERSION_TIMEOUT = 10  # seconds for the post-load self-check
FFMPEG_LOG_TAIL_LINES = 40  # stderr lines kept for error messages


def get_scale_pad_filter(width: int = OUTPUT_WIDTH, height: int = OUTPUT_HEIGHT) -> str:
    """
    Build the scale-and-pad filter that letterboxes any image onto the canvas.

    Preserves aspect ratio (scale down to fit) and centers the result.

    Args:
        width: Canvas width in pixels
        height: Canvas height in pixels

    Returns:
        FFmpeg -vf filter string
    """
    return (
        f"scale={width}:{height}:force_original_aspect_ratio=decrease,"
        f"pad={width}:{height}:(ow-iw)/2:(oh-ih)/2"
    )
