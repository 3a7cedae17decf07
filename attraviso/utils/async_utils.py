"""
Async helpers shared by the Overpass client, the image resolver chain and
the image proxy.

All three walk an ordered list of fallible attempts and stop at the first
one that produces a result, so the control structure lives here once.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Iterable, Optional, Tuple, Type, TypeVar

T = TypeVar('T')

logger = logging.getLogger(__name__)

Attempt = Callable[[], Awaitable[Optional[T]]]

_DONE = object()


async def first_of(
    attempts: Iterable[Attempt],
    *,
    catch: Tuple[Type[BaseException], ...] = (Exception,),
    reraise: bool = False,
    on_error: Optional[Callable[[int, BaseException], None]] = None,
) -> Optional[T]:
    """Run attempts in order and return the first non-None result.

    Attempts are pulled from the iterable lazily, so a generator may build
    the next attempt from state left behind by the previous one. Nothing
    after the first success is evaluated.

    Args:
        attempts: Zero-argument callables returning awaitables
        catch: Exception types that count as a failed attempt. Anything
            else propagates immediately.
        reraise: Re-raise the last caught exception once all attempts are
            exhausted instead of returning None
        on_error: Called with (index, exception) for every caught failure

    Returns:
        The first non-None result, or None when every attempt came up empty
    """
    last_error: Optional[BaseException] = None
    for index, attempt in enumerate(attempts):
        try:
            result = await attempt()
        except catch as e:
            last_error = e
            if on_error is not None:
                on_error(index, e)
            continue
        if result is not None:
            return result

    if reraise and last_error is not None:
        raise last_error
    return None


async def run_workers(
    items: Iterable[Any],
    func: Callable[[Any], Awaitable[Any]],
    concurrency: int,
    stop: Optional[asyncio.Event] = None,
) -> None:
    """Drain items through func with a fixed pool of concurrent workers.

    Each worker pulls the next item from a shared iterator, so at most
    `concurrency` calls of func are in flight at once. Completion order is
    not guaranteed.

    Args:
        items: Items to process
        func: Coroutine function applied to each item
        concurrency: Number of workers
        stop: Once set, workers finish their current item and take no more
    """
    pending = list(items)
    if not pending:
        return
    iterator = iter(pending)

    async def worker():
        while stop is None or not stop.is_set():
            item = next(iterator, _DONE)
            if item is _DONE:
                return
            await func(item)

    workers = max(1, min(concurrency, len(pending)))
    await asyncio.gather(*[worker() for _ in range(workers)])
