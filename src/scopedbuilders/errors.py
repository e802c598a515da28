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

"""Base exception hierarchy for :mod:`scopedbuilders`.

Resolution itself has no recoverable failure modes. The errors below signal
programming mistakes (a key reused for a different type, a name missing from
a catalog) and are raised at the call site that made the mistake. Exceptions
raised by a caller-supplied producer are never wrapped; they propagate out of
``Builder.build()`` unchanged.
"""

from __future__ import annotations


class ScopedBuildersError(Exception):
    """Base class for all scopedbuilders exceptions.

    Subclasses also inherit from a standard exception type (``TypeError``,
    ``LookupError``, ``ValueError``) so callers can handle them with the
    builtin they already expect.
    """


class KeyTypeMismatchError(ScopedBuildersError, TypeError):
    """A key was resolved expecting a different type than it was bound to.

    Raised when both the stored builder and the requesting builder declare a
    ``provides`` type and the two differ. Reusing one key for two unrelated
    dependencies is a caller error; this error surfaces it instead of
    returning a value of the wrong type.
    """

    def __init__(self, key: str, expected: type[object], actual: type[object]) -> None:
        self.key = key
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Builder key '{key}' is bound to {expected.__qualname__}, "
            f"not {actual.__qualname__}"
        )


class UnknownBuilderError(ScopedBuildersError, LookupError):
    """No builder is registered in a catalog under the requested name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"No builder named '{name}'")


class DuplicateBuilderError(ScopedBuildersError, ValueError):
    """A strict catalog received two builders under the same name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Duplicate builder named '{name}'")


__all__ = [
    "DuplicateBuilderError",
    "KeyTypeMismatchError",
    "ScopedBuildersError",
    "UnknownBuilderError",
]
