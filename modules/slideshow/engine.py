"""
FFmpeg engine for the slideshow module.

Wraps the ffmpeg binary behind a small engine interface: a private staging
directory addressed by flat names, a command-execution call, and a channel of
fractional progress events.
"""
import asyncio
import io
import os
import shutil
import stat
import tarfile
import tempfile
import zipfile
from collections import deque
from pathlib import Path
from typing import List, Optional, Sequence

import httpx

from shared.config import settings
from shared.errors import EngineInitError, RetryableError
from shared.logging import get_logger
from shared.retry import retry_with_backoff
from .config import FFMPEG_BINARY_NAME, FFMPEG_VERSION_TIMEOUT, FFMPEG_LOG_TAIL_LINES

logger = get_logger("slideshow.engine")

_BINARY_NAMES = (FFMPEG_BINARY_NAME, f"{FFMPEG_BINARY_NAME}.exe")


@retry_with_backoff(max_attempts=settings.engine_download_attempts, base_delay=2)
async def fetch_artifact(url: str) -> bytes:
    """
    Download an engine artifact.

    Args:
        url: Artifact URL

    Returns:
        Artifact bytes

    Raises:
        RetryableError: If download fails
    """
    try:
        async with httpx.AsyncClient(timeout=120.0, follow_redirects=True) as client:
            response = await client.get(url)
            response.raise_for_status()
            return response.content
    except Exception as e:
        logger.error(f"Failed to download engine artifact from {url}: {e}")
        raise RetryableError(f"Engine artifact download failed: {str(e)}") from e


def extract_binary(payload: bytes, url: str) -> bytes:
    """
    Pull the ffmpeg executable out of a downloaded artifact.

    Supports .zip and tar archives (.tar.xz, .tar.gz, ...); anything else is
    treated as the raw binary.

    Raises:
        EngineInitError: If the archive holds no ffmpeg executable
    """
    lowered = url.lower().split("?", 1)[0]
    if lowered.endswith(".zip"):
        with zipfile.ZipFile(io.BytesIO(payload)) as archive:
            for member in archive.namelist():
                if Path(member).name in _BINARY_NAMES:
                    return archive.read(member)
    elif ".tar" in lowered or lowered.endswith((".tgz", ".txz")):
        with tarfile.open(fileobj=io.BytesIO(payload), mode="r:*") as archive:
            for member in archive.getmembers():
                if member.isfile() and Path(member.name).name in _BINARY_NAMES:
                    extracted = archive.extractfile(member)
                    if extracted is not None:
                        return extracted.read()
    else:
        return payload
    raise EngineInitError(f"No ffmpeg executable found in artifact {url}")


class FFmpegEngine:
    """
    Single ffmpeg engine instance.

    load() resolves the binary and creates the working directory; nothing else
    works before that. The instance is not reentrant: run one exec() at a time.
    """

    def __init__(
        self,
        binary_path: Optional[str] = None,
        download_url: Optional[str] = None,
        cache_dir: Optional[str] = None,
        work_root: Optional[str] = None,
        timeout: Optional[int] = None
    ):
        self.binary_path = binary_path if binary_path is not None else settings.ffmpeg_path
        self.download_url = download_url if download_url is not None else settings.ffmpeg_download_url
        self.cache_dir = Path(cache_dir or settings.ffmpeg_cache_dir)
        self.work_root = work_root if work_root is not None else settings.engine_work_root
        self.timeout = timeout or settings.ffmpeg_timeout

        self.binary: Optional[str] = None
        self.work_dir: Optional[Path] = None
        self.last_log = ""
        self._subscribers: List[asyncio.Queue] = []

    @property
    def loaded(self) -> bool:
        return self.binary is not None and self.work_dir is not None

    # Lifecycle

    async def load(self) -> None:
        """
        Resolve the ffmpeg binary and create the private working directory.

        Raises:
            EngineInitError: If no binary can be found or installed
            RetryableError: If the artifact download keeps failing
        """
        self.binary = await self._resolve_binary()
        if self.work_dir is None:
            if self.work_root:
                Path(self.work_root).mkdir(parents=True, exist_ok=True)
            self.work_dir = Path(tempfile.mkdtemp(prefix="slideshow_engine_", dir=self.work_root))

        logger.info(
            f"FFmpeg engine loaded ({self.binary})",
            extra={"binary": self.binary, "work_dir": str(self.work_dir)}
        )

    async def is_ready(self) -> bool:
        """
        Post-load self-check: the binary must run and report its version.
        """
        if not self.loaded:
            return False
        try:
            process = await asyncio.create_subprocess_exec(
                self.binary, "-version",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE
            )
            stdout, _ = await asyncio.wait_for(process.communicate(), timeout=FFMPEG_VERSION_TIMEOUT)
        except (OSError, asyncio.TimeoutError) as e:
            logger.warning(f"FFmpeg self-check failed: {e}", extra={"binary": self.binary})
            return False

        output = stdout.decode(errors="replace") if stdout else ""
        return process.returncode == 0 and output.startswith("ffmpeg version")

    async def terminate(self) -> None:
        """Remove the working directory and forget the binary."""
        if self.work_dir is not None:
            await asyncio.to_thread(shutil.rmtree, self.work_dir, ignore_errors=True)
        self.work_dir = None
        self.binary = None
        self._subscribers.clear()

    async def _resolve_binary(self) -> str:
        if self.binary_path:
            path = Path(self.binary_path)
            if not path.is_file():
                raise EngineInitError(f"FFMPEG_PATH does not exist: {self.binary_path}")
            return str(path)

        found = shutil.which(FFMPEG_BINARY_NAME)
        if found:
            return found

        if self.download_url:
            return await self._install_binary(self.download_url)

        raise EngineInitError(
            "FFmpeg not found. Please install FFmpeg or set FFMPEG_DOWNLOAD_URL:\n"
            "  macOS: brew install ffmpeg\n"
            "  Linux: apt-get install ffmpeg or yum install ffmpeg\n"
            "  Windows: Download from https://ffmpeg.org/"
        )

    async def _install_binary(self, url: str) -> str:
        target = self.cache_dir / FFMPEG_BINARY_NAME
        if target.is_file() and os.access(target, os.X_OK):
            return str(target)

        logger.info(f"Downloading ffmpeg from {url}", extra={"url": url})
        payload = await fetch_artifact(url)
        binary = extract_binary(payload, url)

        def _write() -> None:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            target.write_bytes(binary)
            target.chmod(target.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)

        await asyncio.to_thread(_write)
        logger.info(
            f"Installed ffmpeg ({len(binary) / 1024 / 1024:.2f} MB)",
            extra={"path": str(target)}
        )
        return str(target)

    # Staging namespace

    def _path(self, name: str) -> Path:
        if self.work_dir is None:
            raise RuntimeError("FFmpeg engine is not loaded")
        return self.work_dir / name

    async def write_file(self, name: str, data: bytes) -> None:
        await asyncio.to_thread(self._path(name).write_bytes, data)

    async def read_file(self, name: str) -> bytes:
        return await asyncio.to_thread(self._path(name).read_bytes)

    async def delete_file(self, name: str) -> None:
        await asyncio.to_thread(self._path(name).unlink)

    async def file_exists(self, name: str) -> bool:
        return await asyncio.to_thread(self._path(name).is_file)

    # Progress channel

    def subscribe(self) -> asyncio.Queue:
        """Open a channel that receives progress fractions (0.0-1.0)."""
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        if queue in self._subscribers:
            self._subscribers.remove(queue)

    def _publish(self, fraction: float) -> None:
        for queue in list(self._subscribers):
            queue.put_nowait(fraction)

    # Execution

    async def exec(
        self,
        args: Sequence[str],
        expected_duration: Optional[float] = None,
        timeout: Optional[int] = None
    ) -> int:
        """
        Run ffmpeg with the given arguments inside the working directory.

        Progress is read from "-progress pipe:1" and published as the fraction
        of expected_duration encoded so far.

        Args:
            args: FFmpeg arguments (without the binary)
            expected_duration: Output duration used to normalize progress
            timeout: Timeout in seconds (default: engine timeout)

        Returns:
            FFmpeg exit code

        Raises:
            asyncio.TimeoutError: If ffmpeg does not finish in time (process is killed)
        """
        if not self.loaded:
            raise RuntimeError("FFmpeg engine is not loaded")

        cmd = [self.binary, "-hide_banner", "-nostats", "-progress", "pipe:1", *args]
        logger.info(f"Running FFmpeg command: {' '.join(cmd)}", extra={"command": cmd})

        process = await asyncio.create_subprocess_exec(
            *cmd,
            cwd=str(self.work_dir),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE
        )
        log_tail: deque = deque(maxlen=FFMPEG_LOG_TAIL_LINES)

        async def read_progress() -> None:
            async for raw in process.stdout:
                key, _, value = raw.decode(errors="replace").strip().partition("=")
                # out_time_ms is the pre-4.1 name and also carries microseconds
                if key in ("out_time_us", "out_time_ms") and expected_duration:
                    try:
                        encoded = int(value) / 1_000_000
                    except ValueError:
                        continue  # "N/A" before the first packet
                    self._publish(min(max(encoded / expected_duration, 0.0), 1.0))
                elif key == "progress" and value == "end":
                    self._publish(1.0)

        async def read_log() -> None:
            async for raw in process.stderr:
                log_tail.append(raw.decode(errors="replace").rstrip())

        try:
            await asyncio.wait_for(
                asyncio.gather(read_progress(), read_log(), process.wait()),
                timeout=timeout or self.timeout
            )
        except (asyncio.TimeoutError, asyncio.CancelledError):
            if process.returncode is None:
                process.kill()
                await process.wait()
            raise
        finally:
            self.last_log = "\n".join(log_tail)

        if process.returncode != 0:
            logger.error(
                f"FFmpeg command failed with code {process.returncode}",
                extra={"return_code": process.returncode, "error": self.last_log}
            )
        return process.returncode
