import asyncio
from typing import Awaitable, Iterable, List, TypeVar

T = TypeVar("T")


async def gather_or_cancel(aws: Iterable[Awaitable[T]]) -> List[T]:
    """
    Run awaitables concurrently and return their results in input order.

    On the first failure the remaining tasks are cancelled and awaited, so any
    connection they hold is released before the failure is re-raised. If the
    caller itself is cancelled (e.g. by a timeout) the children are cancelled
    the same way.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    if not tasks:
        return []
    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        errors = [
            task.exception() for task in tasks
            if task in done and not task.cancelled() and task.exception() is not None
        ]
        if errors:
            raise errors[0]
        return [task.result() for task in tasks]
    finally:
        unfinished = [task for task in tasks if not task.done()]
        for task in unfinished:
            task.cancel()
        if unfinished:
            await asyncio.gather(*unfinished, return_exceptions=True)
