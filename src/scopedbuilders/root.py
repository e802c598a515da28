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

"""Process-wide store of default builders."""

from __future__ import annotations

import threading
from typing import Final, cast

from .builder import Builder
from .dbc import ensure
from .errors import KeyTypeMismatchError
from .runtime.logging import StructuredLogger, get_logger

logger: StructuredLogger = get_logger(__name__, context={"component": "root"})


def check_provides(key: str, bound: Builder[object], requested: Builder[object]) -> None:
    """Raise if two builders for ``key`` declare different result types."""
    if (
        bound.provides is not None
        and requested.provides is not None
        and bound.provides is not requested.provides
    ):
        raise KeyTypeMismatchError(key, bound.provides, requested.provides)


class RootRegistry:
    """Default builders shared by every scope that does not override a key.

    A key is registered lazily, the first time any builder for it is
    resolved without an override. From then on that builder is returned for
    the key no matter which default a later caller supplies, so the first
    registration wins and memoized defaults keep one cache per process.

    Entries are never removed. All access happens under one lock, making
    each ``resolve_default`` call a single atomic check-and-insert.
    """

    __slots__ = ("_builders", "_lock")

    def __init__(self) -> None:  # pyright: ignore[reportMissingSuperCall]
        self._builders: dict[str, Builder[object]] = {}
        self._lock = threading.Lock()

    @ensure(lambda self, default, result: result.key == default.key)
    def resolve_default[T](self, default: Builder[T]) -> Builder[T]:
        """Return the builder registered for ``default.key``, registering it if absent.

        Raises:
            KeyTypeMismatchError: The key is bound to a builder declaring a
                different ``provides`` type.
        """
        key = default.key
        with self._lock:
            bound = self._builders.get(key)
            if bound is None:
                self._builders[key] = cast(Builder[object], default)
                registered = True
            else:
                registered = False

        if registered:
            logger.debug(
                "builder.root.register",
                event="builder.root.register",
                context={"key": key},
            )
            return default

        check_provides(key, cast(Builder[object], bound), cast(Builder[object], default))
        logger.debug(
            "builder.root.hit",
            event="builder.root.hit",
            context={"key": key, "same_builder": bound is default},
        )
        return cast(Builder[T], bound)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._builders

    def __len__(self) -> int:
        with self._lock:
            return len(self._builders)


ROOT_REGISTRY: Final[RootRegistry] = RootRegistry()
"""The process-lifetime registry consulted when no scope overrides a key."""


__all__ = ["ROOT_REGISTRY", "RootRegistry", "check_provides"]
