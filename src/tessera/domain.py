"""Domain models used throughout the framework."""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Hashable, Type, TypeVar

from tessera.errors import ConfigurationError

__all__ = [
    "ProviderKind",
    "ProviderScope",
    "ProviderMode",
    "UseAs",
    "ScopeToken",
    "GLOBAL_SCOPE",
    "ProviderEntry",
    "ProviderOrigin",
    "UseEdge",
    "ModuleDefinition",
    "parse_option",
]

E = TypeVar("E", bound=Enum)


class ProviderKind(str, Enum):
    """The two kinds of provider. Each kind's value is also its reserved key."""

    DECORATOR = "decorator"
    STORE = "store"

    @property
    def reserved_key(self) -> str:
        return self.value


class ProviderScope(str, Enum):
    """Visibility tier of a provider declaration."""

    LOCAL = "local"
    SCOPED = "scoped"
    GLOBAL = "global"


class ProviderMode(str, Enum):
    """Collision policy of a provider declaration."""

    APPEND = "append"
    OVERRIDE = "override"


class UseAs(str, Enum):
    """How far a composed module's global providers may travel."""

    SCOPED = "scoped"
    GLOBAL = "global"


def parse_option(enum_type: Type[E], value: Any, option: str) -> E:
    """Coerce a user-supplied option into ``enum_type``.

    Raises:
        ConfigurationError: If the value is not one of the enum's values.
    """
    try:
        return enum_type(value)
    except ValueError:
        allowed = [member.value for member in enum_type]
        raise ConfigurationError(
            f"Invalid value {value!r} for option '{option}', expected one of {allowed}"
        ) from None


class ScopeToken:
    """An identity compared by reference, used to key module instantiation."""

    __slots__ = ("label",)

    def __init__(self, label: str):
        self.label = label

    def __repr__(self) -> str:
        return f"ScopeToken({self.label!r})"


GLOBAL_SCOPE = ScopeToken("global")


@dataclass(frozen=True)
class ProviderEntry:
    """A single provider declared by a module.

    Attributes:
        kind: Whether this is a decorator or a store entry.
        key: Name under which the value is exposed.
        value: The raw value, or a factory of the current context for decorators.
        export: Whether the value is visible to the composing parent.
        transitive: Whether the value keeps flowing past the composing parent.
        is_factory: Whether ``value`` must be called with the context at start.
        mode: Collision policy for this declaration.
    """

    kind: ProviderKind
    key: str
    value: Any
    export: bool
    transitive: bool
    is_factory: bool
    mode: ProviderMode


@dataclass(frozen=True)
class ProviderOrigin:
    """Where a provider visible in a runtime node came from."""

    kind: ProviderKind
    key: str
    module_name: str
    is_exported: bool


@dataclass(frozen=True, eq=False)
class UseEdge:
    """A dependency of one module definition on another.

    Attributes:
        name: Name of the composed module.
        definition: The composed module's definition, shared by reference.
        scope_id: Identity under which the composed module is instantiated.
        transitive: Whether the composed module's global providers flow further up.
    """

    name: str
    definition: "ModuleDefinition"
    scope_id: Hashable
    transitive: bool


@dataclass(frozen=True, eq=False)
class ModuleDefinition:
    """
    The immutable blueprint of one module.

    Every ``with_*`` method returns a new definition holding a shallow copy of
    the sequences with one item appended; the receiver is left untouched, so
    definitions may be shared freely between builder chains. Definitions
    compare and hash by identity, which is what runtime instantiation keys on.
    """

    providers: tuple[ProviderEntry, ...] = field(default_factory=tuple)
    load_callbacks: tuple[Callable, ...] = field(default_factory=tuple)
    unload_callbacks: tuple[Callable, ...] = field(default_factory=tuple)
    uses: tuple[UseEdge, ...] = field(default_factory=tuple)

    def with_providers(self, *entries: ProviderEntry) -> "ModuleDefinition":
        return replace(self, providers=self.providers + entries)

    def with_load_callback(self, callback: Callable) -> "ModuleDefinition":
        return replace(self, load_callbacks=self.load_callbacks + (callback,))

    def with_unload_callback(self, callback: Callable) -> "ModuleDefinition":
        return replace(self, unload_callbacks=self.unload_callbacks + (callback,))

    def with_use(self, edge: UseEdge) -> "ModuleDefinition":
        return replace(self, uses=self.uses + (edge,))

    def declares(self, kind: ProviderKind, key: str) -> bool:
        return any(p.kind is kind and p.key == key for p in self.providers)

    def has_use(self, definition: "ModuleDefinition", scope_id: Hashable) -> bool:
        return any(
            u.definition is definition and u.scope_id == scope_id for u in self.uses
        )
