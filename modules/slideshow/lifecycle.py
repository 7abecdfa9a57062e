"""
Engine lifecycle management for the slideshow module.

Owns the single engine instance and its load state. Initialization is
single-flight: concurrent callers join the load already in progress and all
observe the same outcome.
"""
import asyncio
from typing import Optional

from shared.errors import EngineInitError
from shared.logging import get_logger
from shared.models.slideshow import EngineState, EngineStatus
from .engine import FFmpegEngine

logger = get_logger("slideshow.lifecycle")


def _consume_result(task: asyncio.Task) -> None:
    # Joiners may all be cancelled; retrieve the exception so it is not reported as unhandled
    if not task.cancelled():
        task.exception()


class EngineLifecycle:
    """
    Lazily initialized, explicitly owned engine.

    State moves UNINITIALIZED -> LOADING -> READY, or LOADING -> FAILED.
    FAILED -> LOADING is allowed on the next ensure_ready() call (retry).

    job_lock serializes jobs against the engine; the engine is not reentrant.
    """

    def __init__(self, engine: Optional[FFmpegEngine] = None):
        self.engine = engine if engine is not None else FFmpegEngine()
        self.job_lock = asyncio.Lock()
        self.load_attempts = 0
        self._state = EngineState()
        self._load_task: Optional[asyncio.Task] = None

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def busy(self) -> bool:
        """True while a job holds the engine."""
        return self.job_lock.locked()

    async def ensure_ready(self) -> FFmpegEngine:
        """
        Return a ready engine, initializing it at most once at a time.

        Returns:
            The ready engine

        Raises:
            EngineInitError: If initialization (or the self-check) failed
        """
        if self._state.status == EngineStatus.READY:
            return self.engine

        if self._load_task is None:
            self.load_attempts += 1
            self._state = EngineState(status=EngineStatus.LOADING)
            logger.info(
                f"Initializing engine (attempt {self.load_attempts})",
                extra={"attempt": self.load_attempts}
            )
            self._load_task = asyncio.create_task(self._initialize())
            self._load_task.add_done_callback(_consume_result)

        # Shield so a cancelled joiner does not cancel the shared load
        await asyncio.shield(self._load_task)
        return self.engine

    async def _initialize(self) -> None:
        try:
            await self.engine.load()
            if not await self.engine.is_ready():
                raise EngineInitError("Engine loaded but did not report itself ready")
        except EngineInitError as e:
            self._fail(e.message)
            raise
        except asyncio.CancelledError:
            self._fail("Engine initialization was cancelled")
            raise
        except Exception as e:
            error = EngineInitError(f"Failed to initialize engine: {e}")
            self._fail(error.message)
            raise error from e
        else:
            self._state = EngineState(status=EngineStatus.READY)
            logger.info("Engine ready", extra={"attempt": self.load_attempts})
        finally:
            self._load_task = None

    def _fail(self, reason: str) -> None:
        self._state = EngineState(status=EngineStatus.FAILED, reason=reason)
        logger.error(
            f"Engine initialization failed: {reason}",
            extra={"attempt": self.load_attempts, "error": reason}
        )

    async def shutdown(self) -> None:
        """
        Tear the engine down and return to UNINITIALIZED.

        Waits for an in-flight load first; its failure is not re-raised here.
        """
        if self._load_task is not None:
            try:
                await asyncio.shield(self._load_task)
            except EngineInitError:
                pass
        await self.engine.terminate()
        self._state = EngineState()
        logger.info("Engine shut down")
