# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Ambient propagation of the active scope.

The active scope lives in a ``contextvars.ContextVar``. asyncio copies the
current context into every task it creates, so tasks forked inside a
``with_scope`` block start from the scope active at fork time, and scopes
they activate stay invisible to their siblings and to the parent.

Plain threads start with an empty context. Use ``propagating`` (or
``ScopedExecutor``) to carry the submitter's scope into a worker thread.
"""

from __future__ import annotations

import contextvars
import inspect
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from typing import ParamSpec, TypeVar

from ..dbc import require
from ..scope import Scope
from .logging import StructuredLogger, get_logger

P = ParamSpec("P")
R = TypeVar("R")

logger: StructuredLogger = get_logger(__name__, context={"component": "context"})

_active_scope: contextvars.ContextVar[Scope | None] = contextvars.ContextVar(
    "scopedbuilders_active_scope", default=None
)


def current_scope() -> Scope:
    """Return the innermost active scope, or an empty scope outside any."""
    scope = _active_scope.get()
    return scope if scope is not None else Scope.empty()


def _is_scope(scope: object) -> tuple[bool, str]:
    return isinstance(scope, Scope), f"expected a Scope, got {type(scope).__name__}"


@contextmanager
@require(_is_scope)
def using_scope(scope: Scope) -> Iterator[Scope]:
    """Activate ``scope`` for the body of a ``with`` block.

    The previously active scope is restored on exit, including when the
    body raises.

    Example::

        with using_scope(Scope.overriding(number, lambda: 99)):
            assert number() == 99
    """
    token = _active_scope.set(scope)
    logger.debug(
        "builder.scope.enter",
        event="builder.scope.enter",
        context={"overrides": len(scope)},
    )
    try:
        yield scope
    finally:
        _active_scope.reset(token)
        logger.debug("builder.scope.exit", event="builder.scope.exit")


def with_scope(
    scope: Scope,
    operation: Callable[P, R],
    /,
    *args: P.args,
    **kwargs: P.kwargs,
) -> R:
    """Run ``operation`` with ``scope`` active and return its result.

    Raises:
        TypeError: ``operation`` returned an awaitable. Its body would run
            after ``scope`` is deactivated, so use ``with_scope_async``.
    """
    with using_scope(scope):
        result = operation(*args, **kwargs)
    if inspect.isawaitable(result):
        if inspect.iscoroutine(result):
            result.close()
        msg = (
            f"with_scope() got an awaitable from {_describe(operation)}; "
            "use with_scope_async() for coroutine functions"
        )
        raise TypeError(msg)
    return result


def _describe(operation: Callable[..., object]) -> str:
    return getattr(operation, "__qualname__", None) or repr(operation)


async def with_scope_async(
    scope: Scope,
    operation: Callable[P, Awaitable[R]],
    /,
    *args: P.args,
    **kwargs: P.kwargs,
) -> R:
    """Await ``operation`` with ``scope`` active and return its result.

    Tasks created while awaiting inherit ``scope``.
    """
    with using_scope(scope):
        return await operation(*args, **kwargs)


def propagating(fn: Callable[P, R]) -> Callable[P, R]:
    """Bind ``fn`` to a snapshot of the current context.

    The snapshot is taken now. Each call runs in a fresh copy of it, so
    calls may run concurrently on different threads, and scopes they
    activate never reach the caller or other calls.
    """
    snapshot = contextvars.copy_context()

    def run(*args: P.args, **kwargs: P.kwargs) -> R:
        return snapshot.copy().run(fn, *args, **kwargs)

    return run


__all__ = [
    "current_scope",
    "propagating",
    "using_scope",
    "with_scope",
    "with_scope_async",
]
