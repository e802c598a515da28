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

"""Tests for BuilderCatalog declarations and lookups."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import uuid4

import pytest

from scopedbuilders import (
    Builder,
    BuilderCatalog,
    DuplicateBuilderError,
    KeyTypeMismatchError,
    Scope,
    UnknownBuilderError,
    with_scope,
)


@dataclass(frozen=True)
class Settings:
    debug: bool = False


@pytest.fixture
def catalog() -> BuilderCatalog:
    return BuilderCatalog(f"app-{uuid4().hex}")


class TestDeclaration:
    def test_computed_decorator_returns_builder(self, catalog: BuilderCatalog) -> None:
        @catalog.computed
        def make_number() -> int:
            return 42

        assert isinstance(make_number, Builder)
        assert make_number.key == catalog.key_for("number")
        assert make_number() == 42

    def test_name_override(self, catalog: BuilderCatalog) -> None:
        @catalog.computed(name="answer")
        def compute() -> int:
            return 42

        assert "answer" in catalog
        assert compute.key == f"{catalog.namespace}.answer"

    def test_name_without_prefix_is_kept(self, catalog: BuilderCatalog) -> None:
        @catalog.computed
        def greeting() -> str:
            return "hi"

        assert list(catalog) == ["greeting"]

    def test_provides_inferred_from_return_annotation(
        self, catalog: BuilderCatalog
    ) -> None:
        @catalog.constant
        def make_settings() -> Settings:
            return Settings()

        assert make_settings.provides is Settings

    def test_explicit_provides_wins(self, catalog: BuilderCatalog) -> None:
        @catalog.computed(provides=object)
        def make_thing() -> int:
            return 1

        assert make_thing.provides is object

    def test_generic_return_annotation_is_not_a_tag(
        self, catalog: BuilderCatalog
    ) -> None:
        @catalog.computed
        def make_items() -> list[int]:
            return [1]

        assert make_items.provides is None

    def test_constant_memoizes(self, catalog: BuilderCatalog) -> None:
        @catalog.constant
        def make_settings() -> Settings:
            return Settings()

        assert make_settings() is make_settings()

    def test_computed_does_not_memoize(self, catalog: BuilderCatalog) -> None:
        @catalog.computed
        def make_settings() -> Settings:
            return Settings()

        assert make_settings() is not make_settings()

    def test_register_existing_builder(self, catalog: BuilderCatalog) -> None:
        builder = Builder.computed(catalog.key_for("raw"), lambda: 1)

        assert catalog.register("raw", builder) is builder
        assert catalog["raw"] is builder

    def test_last_registration_wins_by_default(self, catalog: BuilderCatalog) -> None:
        @catalog.computed(name="value")
        def first() -> int:
            return 1

        @catalog.computed(name="value")
        def second() -> int:
            return 2

        assert catalog["value"] is second
        assert len(catalog) == 1

    def test_strict_catalog_rejects_duplicates(self) -> None:
        strict = BuilderCatalog(f"strict-{uuid4().hex}", strict=True)

        @strict.computed(name="value")
        def first() -> int:
            return 1

        with pytest.raises(DuplicateBuilderError, match="value"):

            @strict.computed(name="value")
            def second() -> int:
                return 2

    def test_empty_namespace_rejected(self) -> None:
        with pytest.raises(ValueError, match="non-empty"):
            _ = BuilderCatalog("")


class TestLookup:
    def test_unknown_name_raises(self, catalog: BuilderCatalog) -> None:
        with pytest.raises(UnknownBuilderError) as exc:
            _ = catalog["missing"]

        assert exc.value.name == "missing"
        assert isinstance(exc.value, LookupError)

    def test_get_returns_registered_builder(self, catalog: BuilderCatalog) -> None:
        @catalog.computed
        def make_number() -> int:
            return 42

        assert catalog.get("number") is make_number

    def test_override_by_catalog_name(self, catalog: BuilderCatalog) -> None:
        @catalog.constant
        def make_settings() -> Settings:
            return Settings()

        scope = Scope.overriding(catalog["settings"], lambda: Settings(debug=True))

        assert with_scope(scope, make_settings).debug is True
        assert make_settings().debug is False

    def test_override_with_wrong_type_is_detected(
        self, catalog: BuilderCatalog
    ) -> None:
        @catalog.computed
        def make_settings() -> Settings:
            return Settings()

        impostor = Builder.computed(make_settings.key, lambda: 0, provides=int)
        scope = Scope.overriding(make_settings, lambda: Settings(debug=True))

        with pytest.raises(KeyTypeMismatchError):
            with_scope(scope, impostor)
