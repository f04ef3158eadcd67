"""Registry of named builder extensions and their bound ``ext`` namespace."""

import functools
from collections.abc import Mapping
from typing import Any, Callable, Iterator, Optional

from tessera.errors import CollisionError, PluginTypeError

__all__ = ["ExtensionRegistry", "BoundExtensions"]


class ExtensionRegistry(Mapping):
    """Immutable mapping of extension names to implementation functions.

    An implementation receives the module it is invoked on as its first
    argument and must return a module.
    """

    def __init__(self, extensions: Optional[Mapping[str, Callable]] = None):
        self._extensions: dict[str, Callable] = dict(extensions or {})

    def __getitem__(self, name: str) -> Callable:
        return self._extensions[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._extensions)

    def __len__(self) -> int:
        return len(self._extensions)

    def with_extensions(self, extensions: Mapping[str, Callable]) -> "ExtensionRegistry":
        """Return a registry with ``extensions`` added, replacing same-named ones."""
        return ExtensionRegistry({**self._extensions, **extensions})

    def merged_with(
        self, other: "ExtensionRegistry", owner: str, contributor: str
    ) -> "ExtensionRegistry":
        """Return the union of both registries.

        Args:
            other: The registry of the module being composed.
            owner: Name of the composing module, for diagnostics.
            contributor: Name of the module being composed, for diagnostics.

        Raises:
            CollisionError: If a name is present in both registries.
        """
        merged = dict(self._extensions)
        for name, impl in other.items():
            if name in merged:
                raise CollisionError(
                    f"Extension '{name}' is already defined by module '{owner}' and "
                    f"cannot be merged from module '{contributor}'. "
                    f"Rename one of the extensions."
                )
            merged[name] = impl
        return ExtensionRegistry(merged)

    def bind(self, receiver: Any, result_type: type) -> "BoundExtensions":
        return BoundExtensions(
            {
                name: _bound(name, impl, receiver, result_type)
                for name, impl in self._extensions.items()
            }
        )


def _bound(name: str, impl: Callable, receiver: Any, result_type: type) -> Callable:
    @functools.wraps(impl)
    def call(*args, **kwargs):
        result = impl(receiver, *args, **kwargs)
        if not isinstance(result, result_type):
            raise PluginTypeError(
                f"Extension '{name}' must return a {result_type.__name__}, "
                f"got {type(result).__name__}"
            )
        return result

    return call


class BoundExtensions:
    """Read-only attribute namespace of extension calls bound to one module."""

    __slots__ = ("_calls",)

    def __init__(self, calls: dict[str, Callable]):
        object.__setattr__(self, "_calls", calls)

    def __getattr__(self, name: str) -> Callable:
        if name == "_calls":
            raise AttributeError(name)
        try:
            return self._calls[name]
        except KeyError:
            raise AttributeError(f"No extension named '{name}'") from None

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError("Extensions are read-only; use Module.extend()")

    def __delattr__(self, name: str) -> None:
        raise AttributeError("Extensions are read-only")

    def __contains__(self, name: str) -> bool:
        return name in self._calls

    def __dir__(self):
        return list(self._calls)
