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

"""Named registries of builders."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import cast, get_origin, get_type_hints, overload

from .builder import Builder, Producer
from .errors import DuplicateBuilderError, UnknownBuilderError
from .runtime.logging import StructuredLogger, get_logger

logger: StructuredLogger = get_logger(__name__, context={"component": "catalog"})

type _Decorator = Callable[[Producer[object]], Builder[object]]


class BuilderCatalog:
    """A namespace of builders declared by decorating factory functions.

    The decorated name becomes a ``Builder`` whose key is
    ``"<namespace>.<name>"``. The default name is the function name with
    any ``make_`` prefix removed, and the declared return type becomes the
    builder's ``provides`` type::

        app = BuilderCatalog("app")

        @app.constant
        def make_settings() -> Settings:
            return Settings.from_env()

        @app.computed(name="request_id")
        def new_request_id() -> str:
            return uuid4().hex

        settings()                # resolves "app.settings"
        app["settings"]           # the same builder, looked up by name

    Looking up an absent name raises ``UnknownBuilderError``, so an override
    written against a misspelled name fails where it is declared::

        Scope.overriding(app["settings"], lambda: Settings(debug=True))

    Args:
        namespace: Prefix for the keys of every builder in the catalog.
        strict: If True, raise ``DuplicateBuilderError`` when a name is
            registered twice. Default is False (last-write-wins).
    """

    __slots__ = ("_builders", "_namespace", "_strict")

    def __init__(  # pyright: ignore[reportMissingSuperCall]
        self, namespace: str, *, strict: bool = False
    ) -> None:
        if not namespace:
            msg = "Catalog namespaces must be non-empty"
            raise ValueError(msg)
        self._namespace = namespace
        self._strict = strict
        self._builders: dict[str, Builder[object]] = {}

    @property
    def namespace(self) -> str:
        return self._namespace

    def key_for(self, name: str) -> str:
        """Return the builder key used for ``name`` in this catalog."""
        return f"{self._namespace}.{name}"

    # === Declaration ===

    def register[T](self, name: str, builder: Builder[T]) -> Builder[T]:
        """Register an existing builder under ``name`` and return it.

        Raises:
            DuplicateBuilderError: If strict mode and ``name`` is taken.
        """
        if self._strict and name in self._builders:
            raise DuplicateBuilderError(name)
        self._builders[name] = cast(Builder[object], builder)
        logger.debug(
            "builder.catalog.register",
            event="builder.catalog.register",
            context={"namespace": self._namespace, "name": name, "key": builder.key},
        )
        return builder

    @overload
    def computed[T](self, func: Producer[T], /) -> Builder[T]: ...

    @overload
    def computed(
        self, *, name: str | None = None, provides: type[object] | None = None
    ) -> _Decorator: ...

    def computed(
        self,
        func: Producer[object] | None = None,
        /,
        *,
        name: str | None = None,
        provides: type[object] | None = None,
    ) -> Builder[object] | _Decorator:
        """Declare a builder that produces a new value on every call."""
        return self._declare(func, name, provides, memoize=False)

    @overload
    def constant[T](self, func: Producer[T], /) -> Builder[T]: ...

    @overload
    def constant(
        self, *, name: str | None = None, provides: type[object] | None = None
    ) -> _Decorator: ...

    def constant(
        self,
        func: Producer[object] | None = None,
        /,
        *,
        name: str | None = None,
        provides: type[object] | None = None,
    ) -> Builder[object] | _Decorator:
        """Declare a builder that produces once and reuses the value."""
        return self._declare(func, name, provides, memoize=True)

    def _declare(
        self,
        func: Producer[object] | None,
        name: str | None,
        provides: type[object] | None,
        *,
        memoize: bool,
    ) -> Builder[object] | _Decorator:
        def decorator(factory: Producer[object]) -> Builder[object]:
            resolved_name = name or _infer_name(factory)
            builder = Builder.computed(
                self.key_for(resolved_name),
                factory,
                provides=provides or _declared_return_type(factory),
            )
            if memoize:
                builder = builder.memoized()
            return self.register(resolved_name, builder)

        if func is None:
            return decorator
        return decorator(func)

    # === Query Methods ===

    def get(self, name: str) -> Builder[object]:
        """Return the builder registered under ``name``.

        Raises:
            UnknownBuilderError: No builder has that name.
        """
        try:
            return self._builders[name]
        except KeyError:
            raise UnknownBuilderError(name) from None

    def __getitem__(self, name: str) -> Builder[object]:
        return self.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._builders

    def __len__(self) -> int:
        return len(self._builders)

    def __iter__(self) -> Iterator[str]:
        """Iterate over registered names in declaration order."""
        yield from self._builders


def _infer_name(factory: Callable[..., object]) -> str:
    name = factory.__name__
    return name.removeprefix("make_") or name


def _declared_return_type(factory: Callable[..., object]) -> type[object] | None:
    # Annotations that cannot be resolved (local classes under postponed
    # evaluation) simply leave the builder untagged.
    try:
        hint = get_type_hints(factory).get("return")
    except (NameError, TypeError):
        return None
    if get_origin(hint) is not None or not isinstance(hint, type):
        return None
    return hint


__all__ = ["BuilderCatalog"]
