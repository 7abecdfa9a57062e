"""
Slideshow module.

Turns an ordered list of still images plus an optional audio track into a
single encoded video by driving FFmpeg through a staged working directory.
"""

from modules.slideshow.engine import FFmpegEngine
from modules.slideshow.lifecycle import EngineLifecycle
from modules.slideshow.process import CompositionPipeline, process

__all__ = ["CompositionPipeline", "EngineLifecycle", "FFmpegEngine", "process"]
