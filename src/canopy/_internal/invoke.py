"""Call sync or async callables uniformly.

Redirecters, data adders and collaborator methods may be plain ``def``
or ``async def``. The sync/async check lives here and nowhere else.
"""

import inspect
from functools import partial
from typing import Any

import anyio.to_thread


async def invoke(func: Any, *args: Any, **kwargs: Any) -> Any:
    """Call *func* and await the result if it is awaitable."""
    result = func(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result


async def invoke_blocking(func: Any, *args: Any, **kwargs: Any) -> Any:
    """Like ``invoke`` but a plain ``def`` runs in an anyio worker thread.

    For user data adders and collaborator clients, which may block on I/O.
    A slow call then only holds up the request waiting on it.
    """
    if inspect.iscoroutinefunction(func):
        return await func(*args, **kwargs)
    result = await anyio.to_thread.run_sync(partial(func, *args, **kwargs))
    if inspect.isawaitable(result):
        result = await result
    return result
