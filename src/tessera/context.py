"""Read-only views over resolved providers, handed to factories and lifecycle hooks."""

from collections.abc import Mapping
from typing import Any, Iterator

__all__ = ["ProviderView", "make_context"]


def _values_of(view: "ProviderView") -> dict[str, Any]:
    return object.__getattribute__(view, "_values")


class ProviderView(Mapping):
    """Mapping of provider keys to values that also supports attribute access.

    The view wraps the dictionary it is given without copying it. Attribute
    access looks up provider keys first, so a provider named ``get``,
    ``items`` or ``_values`` shadows the attribute of the same name; the
    mapping methods stay reachable as ``ProviderView.get(view, key)``.
    """

    __slots__ = ("_values",)

    def __init__(self, values: dict[str, Any]):
        object.__setattr__(self, "_values", values)

    def __getattribute__(self, name: str) -> Any:
        if not name.startswith("__"):
            values = _values_of(self)
            if name in values:
                return values[name]
        return object.__getattribute__(self, name)

    def __getitem__(self, key: str) -> Any:
        return _values_of(self)[key]

    def __iter__(self) -> Iterator[str]:
        return iter(_values_of(self))

    def __len__(self) -> int:
        return len(_values_of(self))

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{type(self).__name__} is read-only")

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"{type(self).__name__} is read-only")

    def __dir__(self):
        return [*object.__dir__(self), *_values_of(self)]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({_values_of(self)!r})"


def make_context(decorators: dict[str, Any], store: dict[str, Any]) -> ProviderView:
    """Merge decorators (flattened) with explicit ``decorator`` and ``store`` sub-views.

    The flattened keys are copied at call time, while the ``decorator`` and
    ``store`` sub-views wrap the given dictionaries and see later additions.
    """
    return ProviderView(
        {
            **decorators,
            "decorator": ProviderView(decorators),
            "store": ProviderView(store),
        }
    )
