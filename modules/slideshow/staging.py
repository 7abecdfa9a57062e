"""
Staging area for the slideshow module.

Reads and writes named buffers inside the engine's private working namespace
and keeps track of everything it wrote so a job can always clean up.
"""
from typing import Iterable, List, Optional

from shared.errors import StagingReadError, StagingWriteError
from shared.logging import get_logger
from .config import (
    FRAME_NAME_PREFIX,
    FRAME_INDEX_WIDTH,
    AUDIO_NAME_STEM,
    OUTPUT_NAME_STEM
)

logger = get_logger("slideshow.staging")


def frame_name(position: int, extension: str = "png", total: Optional[int] = None) -> str:
    """
    Staged name for the frame at a 0-based position.

    Zero-padded to three digits (img000.png). When the sequence has more than
    1000 frames the width grows so lexicographic order still matches frame order.

    Args:
        position: 0-based frame position
        extension: File extension without dot
        total: Total frame count in the job (for padding width)
    """
    width = FRAME_INDEX_WIDTH
    if total is not None and total > 0:
        width = max(width, len(str(total - 1)))
    return f"{FRAME_NAME_PREFIX}{position:0{width}d}.{extension}"


def audio_name(extension: str = "mp3") -> str:
    """Reserved staged name for the audio track."""
    return f"{AUDIO_NAME_STEM}.{extension}"


def output_name(output_format: str) -> str:
    """Reserved staged name for the encoded output."""
    return f"{OUTPUT_NAME_STEM}.{output_format}"


def is_valid_name(name: str) -> bool:
    """Staged names are flat: no separators, no parent references."""
    return bool(name) and "/" not in name and "\\" not in name and name not in (".", "..")


class StagingArea:
    """
    Named-buffer I/O against one engine's working namespace.

    Every successful put() is remembered so discard_all() can remove exactly
    what this job staged, even when the job failed halfway.
    """

    def __init__(self, engine):
        self.engine = engine
        self._staged: List[str] = []

    @property
    def staged_names(self) -> List[str]:
        """Names written by this staging area that have not been discarded yet."""
        return list(self._staged)

    async def put(self, name: str, data: bytes) -> None:
        """
        Write a named buffer, overwriting any existing one.

        Raises:
            StagingWriteError: If the name is invalid or the write fails
        """
        if not is_valid_name(name):
            raise StagingWriteError(f"Invalid staged name: {name!r}")
        # Track before writing so a partially written file is still cleaned up
        if name not in self._staged:
            self._staged.append(name)
        try:
            await self.engine.write_file(name, data)
        except Exception as e:
            raise StagingWriteError(f"Failed to stage {name}: {e}") from e

        logger.debug(f"Staged {name} ({len(data)} bytes)", extra={"staged_name": name, "size": len(data)})

    async def take(self, name: str) -> bytes:
        """
        Read a named buffer back.

        Raises:
            StagingReadError: If the name is invalid or the read fails
        """
        if not is_valid_name(name):
            raise StagingReadError(f"Invalid staged name: {name!r}")
        try:
            return await self.engine.read_file(name)
        except Exception as e:
            raise StagingReadError(f"Failed to read {name}: {e}") from e

    async def exists(self, name: str) -> bool:
        """Check whether a named buffer exists."""
        if not is_valid_name(name):
            return False
        try:
            return await self.engine.file_exists(name)
        except Exception as e:
            logger.warning(f"Could not check {name}: {e}", extra={"staged_name": name})
            return False

    async def discard(self, name: str) -> None:
        """
        Best-effort delete. Never raises; failures are logged.
        """
        if name in self._staged:
            self._staged.remove(name)
        if not is_valid_name(name):
            return
        try:
            await self.engine.delete_file(name)
        except FileNotFoundError:
            pass
        except Exception as e:
            logger.warning(
                f"Failed to discard staged file {name}: {e}",
                extra={"staged_name": name, "error": str(e)}
            )

    async def discard_all(self, extra_names: Iterable[str] = ()) -> None:
        """
        Discard every staged name plus any extra names (e.g. engine output).
        """
        names = self.staged_names
        for name in extra_names:
            if name not in names:
                names.append(name)
        for name in names:
            await self.discard(name)
