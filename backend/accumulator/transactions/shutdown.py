import asyncio
import logging
import threading

logger = logging.getLogger(__name__)


class ShutdownSignal:
    """Thread-safe shutdown flag with a cancellable async wait.

    Set from a signal handler or the scheduler thread; observed by the
    confirmation poll loop between polls.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def request(self) -> None:
        if not self._event.is_set():
            logger.info("Shutdown requested")
        self._event.set()

    def is_set(self) -> bool:
        return self._event.is_set()

    async def wait(self, timeout: float) -> bool:
        """Sleep up to timeout seconds. Returns True if shutdown was requested."""
        if self._event.is_set():
            return True
        if timeout <= 0:
            await asyncio.sleep(0)
            return self._event.is_set()
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._event.wait, timeout)
