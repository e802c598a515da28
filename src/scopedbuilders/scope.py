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

"""Immutable sets of builder overrides."""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import cast, overload

from .builder import Builder, Producer
from .dbc import ensure
from .root import ROOT_REGISTRY, check_provides
from .runtime.logging import StructuredLogger, get_logger

type OverrideTarget[T] = Builder[T] | str
"""A builder whose key should be overridden, or the bare key itself."""

logger: StructuredLogger = get_logger(__name__, context={"component": "scope"})


def _target_key(target: OverrideTarget[object]) -> str:
    return target.key if isinstance(target, Builder) else target


def _override_builder[T](target: OverrideTarget[T], producer: Producer[T]) -> Builder[T]:
    if isinstance(target, Builder):
        return Builder(target.key, producer, target.provides)
    return Builder(target, producer)


@dataclass(slots=True, frozen=True)
class Scope:
    """Overrides consulted before the root defaults.

    A scope maps keys to replacement builders. It is never mutated:
    ``override`` returns a new scope, so a scope can be shared freely
    between threads and tasks.

    Scopes are usually built from whatever scope is active, which makes
    nesting additive::

        outer = Scope.overriding(number, lambda: 2)
        with using_scope(outer):
            inner = Scope.overriding(label, lambda: "inner")
            with using_scope(inner):
                number()  # 2, inherited from outer
                label()   # "inner"

    Example::

        scope = Scope.overriding(
            lambda s: (
                s.override(database, lambda: FakeDatabase()),
                s.override_value(clock, FrozenClock(0)),
            )
        )
        result = with_scope(scope, run_report)
    """

    _overrides: Mapping[str, Builder[object]] = field(
        default_factory=lambda: MappingProxyType({}),
    )
    """Override builders keyed by builder key."""

    @staticmethod
    def empty() -> Scope:
        """Return a scope with no overrides."""
        return _EMPTY

    # === Resolution ===

    def resolve[T](self, default: Builder[T]) -> Builder[T]:
        """Return the override for ``default.key``, else the root default.

        Raises:
            KeyTypeMismatchError: The override declares a different
                ``provides`` type than ``default``.
        """
        override = self._overrides.get(default.key)
        if override is None:
            return ROOT_REGISTRY.resolve_default(default)
        check_provides(default.key, override, cast(Builder[object], default))
        return cast(Builder[T], override)

    # === Overriding ===

    @ensure(lambda self, target, producer, result: _target_key(target) in result)
    def override[T](self, target: OverrideTarget[T], producer: Producer[T]) -> Scope:
        """Return a copy of this scope with ``target``'s key bound to ``producer``.

        Passing a builder keeps its declared ``provides`` type on the
        override.
        """
        builder = _override_builder(target, producer)
        logger.debug(
            "builder.scope.override",
            event="builder.scope.override",
            context={"key": builder.key, "replaces": builder.key in self._overrides},
        )
        entries = dict(self._overrides)
        entries[builder.key] = cast(Builder[object], builder)
        return Scope(MappingProxyType(entries))

    def override_value[T](self, target: OverrideTarget[T], value: T) -> Scope:
        """Return a copy of this scope with ``target``'s key bound to ``value``."""
        return self.override(target, lambda: value)

    @overload
    @staticmethod
    def overriding[T](target: OverrideTarget[T], producer: Producer[T], /) -> Scope: ...

    @overload
    @staticmethod
    def overriding(mutate: Callable[[ScopeBuilder], object], /) -> Scope: ...

    @staticmethod
    def overriding(
        target: OverrideTarget[object] | Callable[[ScopeBuilder], object],
        producer: Producer[object] | None = None,
        /,
    ) -> Scope:
        """Return the active scope with one or more overrides applied.

        Either pass a target and producer, or a callable that receives a
        ``ScopeBuilder`` and records any number of overrides on it. Later
        overrides of the same key win. The result is not activated; hand it
        to ``with_scope`` or ``using_scope``.
        """
        from .runtime.context import current_scope

        builder = ScopeBuilder(current_scope())
        if producer is not None:
            builder.override(cast(OverrideTarget[object], target), producer)
        elif isinstance(target, (Builder, str)):
            msg = "Scope.overriding() needs a producer when given a target"
            raise TypeError(msg)
        else:
            _ = target(builder)
        return builder.build()

    # === Query Methods ===

    def __contains__(self, target: OverrideTarget[object]) -> bool:
        """Check whether this scope overrides the target's key."""
        return _target_key(target) in self._overrides

    def __len__(self) -> int:
        return len(self._overrides)

    def __iter__(self) -> Iterator[str]:
        """Iterate over overridden keys."""
        yield from self._overrides

    def __hash__(self) -> int:
        # MappingProxyType is unhashable; hash the entries instead.
        return hash(frozenset(self._overrides.items()))


_EMPTY: Scope = Scope()


class ScopeBuilder:
    """Accumulates overrides on top of a base scope.

    Passed to the callable given to ``Scope.overriding``. Each call replaces
    the builder's working scope with a new immutable one; ``build()``
    returns the latest.
    """

    __slots__ = ("_scope",)

    def __init__(self, base: Scope) -> None:  # pyright: ignore[reportMissingSuperCall]
        self._scope = base

    def override[T](self, target: OverrideTarget[T], producer: Producer[T]) -> None:
        """Bind ``target``'s key to ``producer``, replacing earlier overrides."""
        self._scope = self._scope.override(target, producer)

    def override_value[T](self, target: OverrideTarget[T], value: T) -> None:
        """Bind ``target``'s key to a fixed ``value``."""
        self._scope = self._scope.override_value(target, value)

    def build(self) -> Scope:
        return self._scope


__all__ = ["OverrideTarget", "Scope", "ScopeBuilder"]
