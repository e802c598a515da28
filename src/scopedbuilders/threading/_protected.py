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

"""A value guarded by its own lock."""

from __future__ import annotations

import threading
from collections.abc import Callable


class ProtectedByLock[V]:
    """Mutable cell whose reads and writes are serialized by a lock.

    Useful for state captured by producer closures, which may be invoked
    from any thread::

        count = ProtectedByLock(0)
        counter = Builder.computed("counter", lambda: count.update(lambda n: n + 1))

    Plain ``value`` reads and writes are individually atomic. Use ``update``
    for read-modify-write sequences.
    """

    __slots__ = ("_lock", "_value")

    def __init__(self, value: V) -> None:  # pyright: ignore[reportMissingSuperCall]
        self._lock = threading.Lock()
        self._value = value

    @property
    def value(self) -> V:
        with self._lock:
            return self._value

    @value.setter
    def value(self, new_value: V) -> None:
        with self._lock:
            self._value = new_value

    def update(self, fn: Callable[[V], V]) -> V:
        """Replace the value with ``fn(value)`` atomically and return it."""
        with self._lock:
            self._value = fn(self._value)
            return self._value

    def __repr__(self) -> str:
        return f"ProtectedByLock({self.value!r})"


__all__ = ["ProtectedByLock"]
