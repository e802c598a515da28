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

from __future__ import annotations

from collections.abc import Callable, Iterator
from uuid import uuid4

import pytest

import scopedbuilders.dbc as dbc_module

pytest_plugins = ["tests.plugins.threadstress"]

type KeyFactory = Callable[[], str]


@pytest.fixture
def key_factory(request: pytest.FixtureRequest) -> KeyFactory:
    """Return a factory of keys unique to this test.

    The root registry lives for the whole process, so every test binds its
    defaults under fresh keys.
    """

    prefix = request.node.name

    def factory() -> str:
        return f"{prefix}.{uuid4().hex}"

    return factory


@pytest.fixture
def unique_key(key_factory: KeyFactory) -> str:
    """Return one key unique to this test."""

    return key_factory()


@pytest.fixture(autouse=True)
def contracts_enabled(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Run every test with design-by-contract checks active."""

    monkeypatch.delenv("SCOPEDBUILDERS_DBC", raising=False)
    with dbc_module.dbc_enabled():
        yield
