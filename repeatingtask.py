# Run a unit of work, wait, repeat, until the stop event is set.
import asyncio
import inspect


async def repeat(work, interval, stop_event):
    """Call `work` every `interval` seconds until `stop_event` is set.

    `work` may be a plain function or a coroutine function. The loop never
    returns normally: once the stop event is observed it raises
    asyncio.CancelledError, which callers treat as the expected end.
    """
    while not stop_event.is_set():
        result = work()
        if inspect.isawaitable(result):
            await result
        try:
            await asyncio.wait_for(stop_event.wait(), interval)
        except asyncio.TimeoutError:
            pass
    raise asyncio.CancelledError()
