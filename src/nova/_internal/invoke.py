"""Invoke helpers — call sync or async callables uniformly.

Capability providers may implement ``post`` as ``def`` or ``async def``,
and observability hooks may be either as well. This module provides a
single helper so the sync/async check lives in exactly one place.

Usage::

    from nova._internal.invoke import invoke

    result = await invoke(provider.post, host, path, body)
"""

import inspect
from typing import Any


async def invoke(func: Any, *args: Any, **kwargs: Any) -> Any:
    """Call *func* and await the result if it's awaitable."""
    result = func(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result
