"""
The public, immutable module builder.

Every builder method returns a new :class:`Module`; the instance it was
called on keeps its definition and may go on being used or composed
elsewhere. Only :meth:`Module.start` and :meth:`Module.stop` change an
instance, and then only its running state.
"""

from collections.abc import Hashable, Mapping
from typing import Any, Callable, Optional, Sequence, Union

from tessera.context import ProviderView
from tessera.domain import (
    GLOBAL_SCOPE,
    ModuleDefinition,
    ProviderEntry,
    ProviderKind,
    ProviderMode,
    ProviderScope,
    ScopeToken,
    UseAs,
    UseEdge,
    parse_option,
)
from tessera.errors import CollisionError, ConfigurationError, PluginTypeError
from tessera.lifecycle import LifecycleOrchestrator
from tessera.registry import BoundExtensions, ExtensionRegistry

__all__ = ["Module"]

_MISSING = object()

Plugin = Union["Module", Sequence["Module"], Callable[["Module"], "Module"], None]
LifecycleCallback = Callable[[ProviderView], Any]


class Module:
    """
    A composable unit of providers, lifecycle hooks and extensions.

    Example:
        >>> logger = (
        ...     Module("logger")
        ...     .decorate("log_level", "info")
        ...     .decorate("log", lambda ctx: Log(ctx.log_level), scope="scoped")
        ... )
        >>> app = Module("app").use(logger).on_load(lambda ctx: ctx.log.info("up"))
        >>> await app.start()
    """

    def __init__(
        self,
        name: str,
        definition: Optional[ModuleDefinition] = None,
        extensions: Optional[ExtensionRegistry] = None,
    ):
        if not isinstance(name, str) or not name:
            raise ConfigurationError(f"Module name must be a non-empty string, got {name!r}")
        self._name = name
        self._definition = definition if definition is not None else ModuleDefinition()
        self._extensions = extensions if extensions is not None else ExtensionRegistry()
        self._ext = self._extensions.bind(self, Module)
        self._lifecycle = LifecycleOrchestrator(name, self._definition)

    def __repr__(self) -> str:
        state = "running" if self.is_running else "stopped"
        return f"<Module {self._name!r} ({state})>"

    @property
    def name(self) -> str:
        return self._name

    @property
    def definition(self) -> ModuleDefinition:
        return self._definition

    @property
    def extensions(self) -> ExtensionRegistry:
        return self._extensions

    @property
    def ext(self) -> BoundExtensions:
        """Extensions registered on, or merged into, this module, bound to it."""
        return self._ext

    @property
    def is_running(self) -> bool:
        return self._lifecycle.is_running

    @property
    def context(self) -> ProviderView:
        """The merged providers visible to this module.

        Raises:
            NotRunningError: If the module has not been started, or has been stopped.
        """
        return self._lifecycle.context

    # Providers

    def decorate(
        self,
        key: Union[str, Mapping[str, Any]],
        value: Any = _MISSING,
        *,
        scope: Union[str, ProviderScope] = ProviderScope.LOCAL,
        mode: Union[str, ProviderMode] = ProviderMode.APPEND,
    ) -> "Module":
        """Declare a decorator: a value, or a factory called with the context at start.

        ``decorate(key, value)`` treats a callable value as a factory;
        ``decorate({key: value, ...})`` always stores values as given.
        """
        return self._add_providers(ProviderKind.DECORATOR, key, value, scope, mode)

    def state(
        self,
        key: Union[str, Mapping[str, Any]],
        value: Any = _MISSING,
        *,
        scope: Union[str, ProviderScope] = ProviderScope.LOCAL,
        mode: Union[str, ProviderMode] = ProviderMode.APPEND,
    ) -> "Module":
        """Declare a store entry, exposed as ``ctx.store.<key>`` and never called."""
        return self._add_providers(ProviderKind.STORE, key, value, scope, mode)

    def provide(
        self,
        key: Union[str, Mapping[str, Any]],
        value: Any = _MISSING,
        *,
        kind: Union[str, ProviderKind, None] = None,
        scope: Union[str, ProviderScope] = ProviderScope.LOCAL,
        mode: Union[str, ProviderMode] = ProviderMode.APPEND,
    ) -> "Module":
        """Declare a provider of an explicit ``kind``."""
        if kind is None:
            raise ConfigurationError("provide() requires a 'kind' option")
        return self._add_providers(
            parse_option(ProviderKind, kind, "kind"), key, value, scope, mode
        )

    def _add_providers(
        self,
        kind: ProviderKind,
        key: Union[str, Mapping[str, Any]],
        value: Any,
        scope: Union[str, ProviderScope],
        mode: Union[str, ProviderMode],
    ) -> "Module":
        scope = parse_option(ProviderScope, scope, "scope")
        mode = parse_option(ProviderMode, mode, "mode")
        entries, object_form = _parse_entries(key, value)

        new_entries = []
        for entry_key, entry_value in entries:
            if entry_key == kind.reserved_key:
                raise ConfigurationError(
                    f"Cannot use reserved key '{entry_key}' as a {kind.value} name"
                )
            if mode is ProviderMode.APPEND and self._definition.declares(kind, entry_key):
                raise CollisionError(
                    f"{kind.value} '{entry_key}' is already defined in module "
                    f"'{self._name}'. Use mode='override' to replace it."
                )
            new_entries.append(
                ProviderEntry(
                    kind=kind,
                    key=entry_key,
                    value=entry_value,
                    export=scope is not ProviderScope.LOCAL,
                    transitive=scope is ProviderScope.GLOBAL,
                    is_factory=(
                        kind is ProviderKind.DECORATOR
                        and not object_form
                        and _is_factory(entry_value)
                    ),
                    mode=mode,
                )
            )

        return self._derive(definition=self._definition.with_providers(*new_entries))

    # Lifecycle hooks

    def on_load(self, callback: LifecycleCallback) -> "Module":
        """Run ``callback(ctx)`` at start, after this module's providers are resolved."""
        _require_callable(callback, "on_load()")
        return self._derive(definition=self._definition.with_load_callback(callback))

    def on_unload(self, callback: LifecycleCallback) -> "Module":
        """Run ``callback(ctx)`` at stop, before the modules this one uses are unloaded."""
        _require_callable(callback, "on_unload()")
        return self._derive(definition=self._definition.with_unload_callback(callback))

    # Extensions

    def extend(
        self,
        name: Union[str, Mapping[str, Callable]],
        fn: Optional[Callable] = None,
    ) -> "Module":
        """Register extension methods, callable as ``module.ext.<name>(...)``.

        Each function is called with the module as its first argument and must
        return a module, typically one derived from it with builder calls.
        """
        if isinstance(name, str):
            if fn is None:
                raise ConfigurationError("extend(name, fn) requires a function")
            extensions = {name: fn}
        elif isinstance(name, Mapping):
            if fn is not None:
                raise ConfigurationError("extend(mapping) takes no function argument")
            extensions = dict(name)
        else:
            raise ConfigurationError(
                f"extend() expects a name or a mapping of names, got {type(name).__name__}"
            )

        for ext_name, impl in extensions.items():
            if not isinstance(ext_name, str):
                raise ConfigurationError(f"Extension name must be a string, got {ext_name!r}")
            _require_callable(impl, f"Extension '{ext_name}'")

        return self._derive(extensions=self._extensions.with_extensions(extensions))

    # Composition

    def use(
        self,
        plugin: Plugin,
        *,
        scope: Optional[Hashable] = None,
        as_: Union[str, UseAs] = UseAs.GLOBAL,
    ) -> "Module":
        """Compose another module into this one.

        Args:
            plugin: A module, a sequence of modules (composed left to right), or
                a function taking this module and returning a module.
            scope: ``None`` or ``"global"`` shares one instance of the plugin
                with every other global use; ``"local"`` gives this use its own
                instance; any other hashable value names an instance that uses
                with the same name share.
            as_: ``"scoped"`` stops the plugin's global providers at this module.

        Raises:
            PluginTypeError: If ``plugin`` is of an unsupported type, or a
                transform function does not return a module.
            CollisionError: If the plugin brings an extension name already bound here.
        """
        if plugin is None:
            return self

        if isinstance(plugin, Module):
            return self._use_module(plugin, scope, parse_option(UseAs, as_, "as_"))

        if isinstance(plugin, (list, tuple)):
            module = self
            for item in plugin:
                module = module.use(item, scope=scope, as_=as_)
            return module

        if callable(plugin):
            result = plugin(self)
            if not isinstance(result, Module):
                raise PluginTypeError(
                    f"Plugin function must return a Module, got {type(result).__name__}"
                )
            return result

        raise PluginTypeError(f"Cannot use {type(plugin).__name__} as a plugin")

    def _use_module(self, plugin: "Module", scope: Optional[Hashable], as_: UseAs) -> "Module":
        scope_id = _use_scope_id(plugin.name, scope)
        if self._definition.has_use(plugin.definition, scope_id):
            return self

        edge = UseEdge(
            name=plugin.name,
            definition=plugin.definition,
            scope_id=scope_id,
            transitive=as_ is not UseAs.SCOPED,
        )
        return self._derive(
            definition=self._definition.with_use(edge),
            extensions=self._extensions.merged_with(
                plugin.extensions, self._name, plugin.name
            ),
        )

    # Lifecycle

    async def start(self) -> "Module":
        """Instantiate the module tree, resolve providers and run ``on_load`` hooks.

        Returns:
            This module, now running. Starting a running module does nothing.
        """
        await self._lifecycle.start()
        return self

    async def stop(self) -> None:
        """Run ``on_unload`` hooks in reverse load order and discard the runtime tree."""
        await self._lifecycle.stop()

    def _derive(
        self,
        definition: Optional[ModuleDefinition] = None,
        extensions: Optional[ExtensionRegistry] = None,
    ) -> "Module":
        return Module(
            self._name,
            definition if definition is not None else self._definition,
            extensions if extensions is not None else self._extensions,
        )


def _parse_entries(key: Any, value: Any) -> tuple[list[tuple[str, Any]], bool]:
    if isinstance(key, str):
        if value is _MISSING:
            raise ConfigurationError(f"No value given for provider '{key}'")
        return [(key, value)], False

    if isinstance(key, Mapping):
        if value is not _MISSING:
            raise ConfigurationError("Mapping form takes no separate value")
        for entry_key in key:
            if not isinstance(entry_key, str):
                raise ConfigurationError(f"Provider key must be a string, got {entry_key!r}")
        return list(key.items()), True

    raise ConfigurationError(
        f"Expected a provider key or a mapping of providers, got {type(key).__name__}"
    )


def _is_factory(value: Any) -> bool:
    return callable(value) and not isinstance(value, type)


def _require_callable(fn: Any, what: str) -> None:
    if not callable(fn):
        raise ConfigurationError(f"{what} requires a callable, got {type(fn).__name__}")


def _use_scope_id(plugin_name: str, scope: Optional[Hashable]) -> Hashable:
    if scope is None or scope == ProviderScope.GLOBAL:
        return GLOBAL_SCOPE
    if scope == ProviderScope.LOCAL:
        return ScopeToken(f"local:{plugin_name}")
    if not isinstance(scope, Hashable):
        raise ConfigurationError(f"use() scope must be hashable, got {type(scope).__name__}")
    return scope
