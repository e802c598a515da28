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

"""Property-based tests for override precedence and resolution."""

from __future__ import annotations

import asyncio
from uuid import uuid4

from hypothesis import given, settings, strategies as st

from scopedbuilders import (
    Builder,
    Scope,
    ScopeBuilder,
    using_scope,
    with_scope,
    with_scope_async,
)

# Keys are drawn from a small pool so batches frequently repeat a key.
slot_indices = st.integers(min_value=0, max_value=4)
override_batches = st.lists(st.tuples(slot_indices, st.integers()), max_size=12)


def _slots() -> list[Builder[int | None]]:
    prefix = uuid4().hex
    return [Builder.computed(f"{prefix}.{index}", lambda: None) for index in range(5)]


@given(override_batches)
@settings(max_examples=100)
def test_last_override_in_batch_wins(batch: list[tuple[int, int]]) -> None:
    slots = _slots()

    def mutate(builder: ScopeBuilder) -> None:
        for index, value in batch:
            builder.override_value(slots[index], value)

    expected: dict[int, int | None] = {index: None for index in range(5)}
    expected.update(dict(batch))

    scope = Scope.overriding(mutate)
    observed = with_scope(scope, lambda: {i: slot() for i, slot in enumerate(slots)})

    assert observed == expected


@given(st.lists(override_batches, min_size=1, max_size=5))
@settings(max_examples=75)
def test_nested_scopes_resolve_innermost_override(
    layers: list[list[tuple[int, int]]],
) -> None:
    slots = _slots()
    expected: dict[int, int | None] = {index: None for index in range(5)}

    def descend(remaining: list[list[tuple[int, int]]]) -> dict[int, int | None]:
        if not remaining:
            return {i: slot() for i, slot in enumerate(slots)}
        layer, *rest = remaining

        def mutate(builder: ScopeBuilder) -> None:
            for index, value in layer:
                builder.override_value(slots[index], value)

        with using_scope(Scope.overriding(mutate)):
            return descend(rest)

    for layer in layers:
        expected.update(dict(layer))

    assert descend(layers) == expected
    assert all(slot() is None for slot in slots)


@given(st.lists(st.integers(), min_size=2, max_size=8, unique=True))
@settings(max_examples=50, deadline=None)
def test_concurrent_tasks_observe_only_their_override(values: list[int]) -> None:
    slot = Builder.computed(f"{uuid4().hex}.shared", lambda: -1)

    async def branch(value: int) -> int:
        async def read() -> int:
            await asyncio.sleep(0)
            return slot()

        return await with_scope_async(Scope.overriding(slot, lambda: value), read)

    async def main() -> list[int]:
        return list(await asyncio.gather(*(branch(value) for value in values)))

    assert asyncio.run(main()) == values
    assert slot() == -1


@given(st.integers(), st.integers())
@settings(max_examples=50)
def test_first_default_wins_for_process(first: int, second: int) -> None:
    key = f"{uuid4().hex}.root"
    winner = Builder.computed(key, lambda: first)
    loser = Builder.computed(key, lambda: second)

    assert winner() == first
    assert loser() == first
    assert with_scope(Scope.overriding(loser, lambda: second), winner) == second
    assert loser() == first
