"""Task supervision helpers shared by the long-running flows."""

import asyncio
import logging
import signal

logger = logging.getLogger(__name__)


class BackgroundTask:
    """Handle for a supervised background coroutine.

    The owner keeps the handle and is responsible for cancel() + join() at
    shutdown; nothing is cleaned up implicitly.
    """

    def __init__(self, coro, name: str | None = None):
        self.name = name
        self._task = asyncio.create_task(coro, name=name)

    @property
    def done(self) -> bool:
        return self._task.done()

    def cancel(self) -> bool:
        return self._task.cancel()

    async def join(self):
        """Wait for the task; a cancelled task joins as None.

        Cancelling the caller while it waits does not cancel the task.
        """
        await asyncio.wait({self._task})
        if self._task.cancelled():
            return None
        return self._task.result()


async def _supervise(coro, signals):
    loop = asyncio.get_running_loop()
    main = asyncio.create_task(coro)

    def interrupt(signame: str) -> None:
        logger.info("%s received", signame)
        main.cancel()

    for sig in signals:
        try:
            loop.add_signal_handler(sig, interrupt, sig.name)
        except NotImplementedError:
            # add_signal_handler is unavailable on Windows event loops
            logger.debug("Signal handler for %s not supported", sig.name)

    try:
        return await main
    except asyncio.CancelledError:
        logger.info("Interrupted")
        return 0
    finally:
        for sig in signals:
            try:
                loop.remove_signal_handler(sig)
            except NotImplementedError:
                pass


def run_with_signals(coro, signals=(signal.SIGINT, signal.SIGTERM)) -> int:
    """Run coro to completion; SIGINT/SIGTERM cancel it and exit 0.

    The coroutine's own finally blocks perform cleanup on cancellation.

    Returns:
        The coroutine's return value (an exit code), or 0 when interrupted
    """
    return asyncio.run(_supervise(coro, signals))
