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

"""Thread pool that carries the active scope into worker threads."""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Iterator
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import TypeVar

from ..runtime.context import propagating

T = TypeVar("T")
A = TypeVar("A")


@dataclass
class ScopedExecutor:
    """Thread pool whose tasks run in a snapshot of the submitter's context.

    A new thread starts with an empty ``contextvars`` context, so it would
    otherwise see only the root defaults. Each submission captures the
    context at submit time: the task observes the scope active at that point,
    and any scope it activates stays local to the task.

    Example::

        overrides = Scope.overriding(database, lambda: FakeDatabase())
        with ScopedExecutor(max_workers=4) as executor, using_scope(overrides):
            futures = [executor.submit(lambda: database().query(q)) for q in queries]
        results = [f.result() for f in futures]
    """

    max_workers: int | None = None
    thread_name_prefix: str = "scopedbuilders"
    _executor: ThreadPoolExecutor | None = field(default=None, repr=False)

    def _ensure_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.max_workers,
                thread_name_prefix=self.thread_name_prefix,
            )
        return self._executor

    def submit(self, fn: Callable[[], T]) -> Future[T]:
        """Run ``fn`` on the pool inside a copy of the current context."""
        return self._ensure_executor().submit(propagating(fn))

    def map(
        self,
        fn: Callable[[A], T],
        items: Iterable[A],
        *,
        timeout: float | None = None,
    ) -> Iterator[T]:
        """Apply ``fn`` to each item concurrently.

        Every call gets its own copy of the context captured here, so calls
        do not observe scopes activated by their siblings. ``timeout`` is a
        single deadline measured from this call, as in ``Executor.map``.
        Calls not yet consumed are cancelled when iteration stops early.

        Raises:
            TimeoutError: From the iterator, once the deadline has passed.
        """
        end_time = None if timeout is None else time.monotonic() + timeout
        executor = self._ensure_executor()
        futures = [executor.submit(propagating(fn), item) for item in items]
        futures.reverse()

        def results() -> Iterator[T]:
            try:
                while futures:
                    future = futures.pop()
                    if end_time is None:
                        yield future.result()
                    else:
                        yield future.result(timeout=end_time - time.monotonic())
            finally:
                for future in futures:
                    _ = future.cancel()

        return results()

    def shutdown(self, *, wait: bool = True) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None

    def __enter__(self) -> ScopedExecutor:
        return self

    def __exit__(self, *args: object) -> None:
        self.shutdown(wait=True)


__all__ = ["ScopedExecutor"]
