"""
Pytest fixtures for slideshow tests.
"""
import asyncio
from typing import Dict, List, Optional, Sequence

import pytest

from shared.models.slideshow import AudioTrack, Frame, JobSettings
from modules.slideshow.lifecycle import EngineLifecycle


class FakeEngine:
    """
    In-memory stand-in for FFmpegEngine.

    exec() publishes the configured progress samples and, on success, writes
    `output` under the last argument (the output name).
    """

    def __init__(
        self,
        output: Optional[bytes] = b"\x00\x00\x00\x18ftypmp42" + b"x" * 2048,
        return_code: int = 0,
        progress: Sequence[float] = (0.25, 0.5, 1.0),
        ready: bool = True,
        load_error: Optional[Exception] = None,
        load_delay: float = 0.0,
        exec_error: Optional[BaseException] = None
    ):
        self.output = output
        self.return_code = return_code
        self.progress = list(progress)
        self.ready = ready
        self.load_error = load_error
        self.load_delay = load_delay
        self.exec_error = exec_error
        self.exec_gate: Optional[asyncio.Event] = None

        self.timeout = 300
        self.last_log = ""
        self.files: Dict[str, bytes] = {}
        self.load_calls = 0
        self.exec_calls: List[dict] = []
        self.fail_writes = set()
        self.fail_reads = set()
        self.fail_deletes = set()
        self.active_execs = 0
        self.max_active_execs = 0
        self._subscribers: List[asyncio.Queue] = []

    async def load(self) -> None:
        self.load_calls += 1
        if self.load_delay:
            await asyncio.sleep(self.load_delay)
        else:
            await asyncio.sleep(0)
        if self.load_error is not None:
            raise self.load_error

    async def is_ready(self) -> bool:
        return self.ready

    async def terminate(self) -> None:
        self.files.clear()

    async def write_file(self, name: str, data: bytes) -> None:
        if name in self.fail_writes:
            raise OSError(f"No space left on device: {name}")
        self.files[name] = bytes(data)

    async def read_file(self, name: str) -> bytes:
        if name in self.fail_reads:
            raise OSError(f"I/O error: {name}")
        if name not in self.files:
            raise FileNotFoundError(name)
        return self.files[name]

    async def delete_file(self, name: str) -> None:
        if name in self.fail_deletes:
            raise OSError(f"Device busy: {name}")
        if name not in self.files:
            raise FileNotFoundError(name)
        del self.files[name]

    async def file_exists(self, name: str) -> bool:
        return name in self.files

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        if queue in self._subscribers:
            self._subscribers.remove(queue)

    async def exec(self, args, expected_duration=None, timeout=None) -> int:
        self.exec_calls.append({
            "args": list(args),
            "expected_duration": expected_duration,
            "files": dict(self.files)
        })
        self.active_execs += 1
        self.max_active_execs = max(self.max_active_execs, self.active_execs)
        try:
            if self.exec_gate is not None:
                await self.exec_gate.wait()
            if self.exec_error is not None:
                raise self.exec_error
            for fraction in self.progress:
                for queue in list(self._subscribers):
                    queue.put_nowait(fraction)
                await asyncio.sleep(0)
            if self.return_code == 0 and self.output is not None:
                self.files[args[-1]] = self.output
            return self.return_code
        finally:
            self.active_execs -= 1


@pytest.fixture
def fake_engine():
    """Create a fake engine (call with overrides)."""
    def _create_engine(**kwargs) -> FakeEngine:
        return FakeEngine(**kwargs)
    return _create_engine


@pytest.fixture
def make_lifecycle(fake_engine):
    """Create a lifecycle around a fake engine."""
    def _create_lifecycle(**kwargs) -> EngineLifecycle:
        return EngineLifecycle(engine=fake_engine(**kwargs))
    return _create_lifecycle


@pytest.fixture
def sample_frames():
    """Create a list of frames with contiguous indices."""
    def _create_frames(count: int = 3, extension: str = "png") -> List[Frame]:
        return [
            Frame(index=i, data=f"image-{i}".encode(), extension=extension)
            for i in range(count)
        ]
    return _create_frames


@pytest.fixture
def sample_audio():
    """Create a sample audio track."""
    return AudioTrack(data=b"ID3" + b"\x00" * 4096, extension="mp3")


@pytest.fixture
def job_settings():
    """Job settings used by the scenario tests: 2s per frame, 30 fps, mp4."""
    return JobSettings(duration_per_frame=2, frame_rate=30, output_format="mp4")
