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

"""Scoped builders: keyed factories with ambient, nestable overrides.

Quick Start::

    from scopedbuilders import Builder, Scope, with_scope

    # Declare defaults anywhere
    number = Builder.computed("number", lambda: 42)
    settings = Builder.constant("settings", Settings.from_env)

    number()  # 42, registered in the root registry on first use

    # Override for a delimited extent
    result = with_scope(Scope.overriding(number, lambda: 99), number)
    assert result == 99
    assert number() == 42

    # Several overrides at once; later ones win
    scope = Scope.overriding(
        lambda s: (
            s.override(number, lambda: 2),
            s.override_value(settings, Settings(debug=True)),
        )
    )

Resolution order
----------------

1. The innermost active scope (which already contains the overrides of
   every scope it was built on top of).
2. The root registry, where the first default resolved for a key is kept
   for the lifetime of the process.

Concurrency
-----------

The active scope is carried in a ``contextvars.ContextVar``. asyncio tasks
inherit it at creation and never leak changes back. Use ``propagating`` or
``ScopedExecutor`` to carry it into threads.
"""

from __future__ import annotations

from .builder import Builder, Producer
from .catalog import BuilderCatalog
from .errors import (
    DuplicateBuilderError,
    KeyTypeMismatchError,
    ScopedBuildersError,
    UnknownBuilderError,
)
from .root import ROOT_REGISTRY, RootRegistry
from .runtime.context import (
    current_scope,
    propagating,
    using_scope,
    with_scope,
    with_scope_async,
)
from .runtime.logging import configure_logging
from .scope import OverrideTarget, Scope, ScopeBuilder
from .threading import ProtectedByLock, ScopedExecutor

__all__ = [
    "ROOT_REGISTRY",
    "Builder",
    "BuilderCatalog",
    "DuplicateBuilderError",
    "KeyTypeMismatchError",
    "OverrideTarget",
    "Producer",
    "ProtectedByLock",
    "RootRegistry",
    "Scope",
    "ScopeBuilder",
    "ScopedBuildersError",
    "ScopedExecutor",
    "UnknownBuilderError",
    "configure_logging",
    "current_scope",
    "propagating",
    "using_scope",
    "with_scope",
    "with_scope_async",
]
