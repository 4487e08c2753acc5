import asyncio
import logging
from functools import partial
from typing import Any, Awaitable, Callable, Coroutine


async def safe_wrapper(c: Coroutine):
    try:
        return await c
    except asyncio.CancelledError:
        raise
    except Exception as e:
        logging.getLogger(__name__).error(f"Unhandled error in background task: {str(e)}", exc_info=True)


def safe_ensure_future(coro: Coroutine, *args, **kwargs) -> asyncio.Future:
    return asyncio.ensure_future(safe_wrapper(coro), *args, **kwargs)


async def run_in_thread(func: Callable, *args, **kwargs) -> Any:
    """
    Run a synchronous function in a separate thread
    """
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, partial(func, *args, **kwargs))


async def drive_until_done(aw: Awaitable, step: Callable[[], Awaitable[Any]], poll_interval: float) -> Any:
    """
    Awaits `aw`, calling `step()` every time it is still pending after `poll_interval` seconds.
    If `step` raises or the caller is cancelled, `aw` is cancelled too.
    """
    task = asyncio.ensure_future(aw)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=poll_interval)
            if task in done:
                return task.result()
            await step()
    finally:
        if not task.done():
            task.cancel()
