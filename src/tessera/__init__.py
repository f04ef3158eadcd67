"""Tessera module composition framework.

Tessera composes independent modules, each declaring providers (values and
services), lifecycle hooks and chainable extension methods, into a tree that
starts and stops as one unit. Modules are immutable builders: every call
returns a new module, so a module can be composed into several parents
without being copied, and is instantiated once per scope identity.

Key Features:
    - Decorator (service) and store (state) providers, with value or factory form
    - Local, scoped (direct parent) and global (all ancestors) provider visibility
    - Collision detection, with explicit override mode
    - Shared instantiation of modules used from several parents
    - Asynchronous on_load/on_unload hooks run in dependency order
    - Fluent extension methods merged across composed modules

Basic Usage:
    >>> from tessera import Module
    >>>
    >>> database = Module("database").decorate(
    ...     "db", lambda ctx: Database(), scope="global"
    ... )
    >>> app = Module("app").use(database).on_load(lambda ctx: ctx.db.connect())
    >>> await app.start()
    >>> app.context.db
    >>> await app.stop()

The framework consists of several core modules:
    - module: The public Module builder
    - domain: Immutable definition models and option enums
    - tree: Runtime node instantiation with shared (definition, scope) nodes
    - resolver: Per-node provider import, propagation and declaration
    - lifecycle: Load order and start/stop orchestration
    - registry: Extension registry and the bound ``ext`` namespace
    - context: Read-only provider views handed to factories and hooks
    - errors: Framework-specific exceptions
"""

from tessera.context import ProviderView
from tessera.domain import ProviderKind, ProviderMode, ProviderScope, UseAs
from tessera.errors import (
    CollisionError,
    ConfigurationError,
    ModuleError,
    NotRunningError,
    PluginTypeError,
)
from tessera.module import Module

__all__ = [
    "Module",
    "ProviderView",
    "ProviderKind",
    "ProviderMode",
    "ProviderScope",
    "UseAs",
    "ModuleError",
    "ConfigurationError",
    "CollisionError",
    "PluginTypeError",
    "NotRunningError",
]
