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

"""Keyed factories resolved through the active scope."""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Final, TypeVar

from .runtime.logging import StructuredLogger, get_logger

T = TypeVar("T")

Producer = Callable[[], T]
"""Zero-argument callable producing a value. May be invoked from any thread."""

logger: StructuredLogger = get_logger(__name__, context={"component": "builder"})


def _require_key(key: str) -> str:
    if not isinstance(key, str) or not key:
        msg = f"Builder keys must be non-empty strings, got {key!r}"
        raise ValueError(msg)
    return key


@dataclass(slots=True, frozen=True)
class Builder[T]:
    """A value-producing callable bound to a stable key.

    Calling ``build()`` (or the builder itself) does not run ``produce``
    directly. It asks the active scope for the builder registered under
    ``key``, passing ``self`` as the default, and runs whatever comes back.
    An override therefore replaces the behaviour of every call site that
    shares the key::

        number = Builder.computed("number", lambda: 42)

        number()                                          # 42
        with_scope(Scope.overriding(number, lambda: 99), number)  # 99

    Builders are plain values: copies share the same ``produce`` closure and
    therefore the same captured state, including memoization caches.

    Args:
        key: Identity shared by a default and the overrides that replace it.
        produce: Factory for the value.
        provides: Optional declared result type. When both the stored and
            the requesting builder carry one, they must agree.
    """

    key: str
    """Identity shared by a default and the overrides that replace it."""

    produce: Producer[T] = field(repr=False)
    """Raw factory. Callers should go through ``build()`` instead."""

    provides: type[T] | None = None
    """Declared result type used to detect key reuse across types."""

    def __post_init__(self) -> None:
        _ = _require_key(self.key)

    # === Resolution ===

    def build(self) -> T:
        """Resolve this key against the active scope and produce a value."""
        from .runtime.context import current_scope

        return current_scope().resolve(self).produce()

    def __call__(self) -> T:
        return self.build()

    # === Composition ===

    def wrap[U](
        self,
        transform: Callable[[Producer[T]], U],
        *,
        provides: type[U] | None = None,
    ) -> Builder[U]:
        """Return a builder under the same key that runs ``transform(self.produce)``.

        ``transform`` receives this builder's own ``produce``, not the one an
        active scope would resolve to. Use it for decorators such as logging
        or caching around a known default.
        """
        produce = self.produce
        return Builder(self.key, lambda: transform(produce), provides)

    def memoized(self) -> Builder[T]:
        """Return a builder that produces once and then returns the cached value.

        The cache belongs to the returned builder. Two builders memoized
        separately, even under the same key, keep separate caches. Only use
        this for values that are safe to share between threads.

        The first successful result is cached. Concurrent first callers are
        serialized so ``produce`` runs at most once per success. A failing
        ``produce`` leaves the cache empty and its exception propagates.
        """
        cell = _MemoCell[T](self.key)
        return self.wrap(cell.get_or_produce, provides=self.provides)

    # === Factories ===

    @staticmethod
    def computed[V](
        key: str, producer: Producer[V], *, provides: type[V] | None = None
    ) -> Builder[V]:
        """Define a builder that produces a new value on every call."""
        return Builder(key, producer, provides)

    @staticmethod
    def constant[V](
        key: str, producer: Producer[V], *, provides: type[V] | None = None
    ) -> Builder[V]:
        """Define a builder that produces on first access and reuses the value."""
        return Builder.computed(key, producer, provides=provides).memoized()

    @staticmethod
    def value[V](key: str, value: V) -> Builder[V]:
        """Define a builder that always returns ``value``."""
        return Builder(key, lambda: value, type(value))


class _Unset:
    __slots__ = ()

    def __repr__(self) -> str:
        return "<unset>"


_UNSET: Final = _Unset()


class _MemoCell[T]:
    """Lock-guarded single-value cache backing ``Builder.memoized``."""

    __slots__ = ("_lock", "_logger", "_value")

    def __init__(self, key: str) -> None:  # pyright: ignore[reportMissingSuperCall]
        self._logger = logger.bind(key=key)
        self._lock = threading.Lock()
        self._value: T | _Unset = _UNSET

    def get_or_produce(self, produce: Producer[T]) -> T:
        with self._lock:
            if not isinstance(self._value, _Unset):
                return self._value
            try:
                value = produce()
            except Exception as exc:
                self._logger.debug(
                    "builder.memo.failure",
                    event="builder.memo.failure",
                    context={"error": type(exc).__name__},
                )
                raise
            self._value = value
            self._logger.debug(
                "builder.memo.populate",
                event="builder.memo.populate",
                context={"value_type": type(value).__qualname__},
            )
            return value


__all__ = ["Builder", "Producer"]
