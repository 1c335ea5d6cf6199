import asyncio
import logging

from .connection_manager import SessionRegistry

logger = logging.getLogger(__name__)


class LivenessSweeper:
    def __init__(self, registry: SessionRegistry, interval: float):
        self.registry = registry
        self.interval = interval
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="liveness-sweep")
        logger.info("Liveness sweep started (every %ss)", self.interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Liveness sweep stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                evicted = await self.registry.sweep()
            except Exception:
                logger.exception("Liveness sweep failed")
                continue
            if evicted:
                logger.info("Liveness sweep evicted %d session(s)", len(evicted))
