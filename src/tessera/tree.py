"""
Instantiation of module definitions into a runtime tree.

Each (definition, scope identity) pair is instantiated exactly once per
build: a module composed from several parents under the same identity is
represented by one shared ``RuntimeNode``, so its providers are resolved and
its hooks run only once.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Hashable, Optional

from tessera.context import ProviderView
from tessera.domain import GLOBAL_SCOPE, ModuleDefinition, ProviderKind, ProviderOrigin

__all__ = ["RuntimeNode", "TreeBuilder", "ProviderMaps", "empty_provider_maps"]

logger = logging.getLogger(__name__)

ProviderMaps = dict[ProviderKind, dict[str, Any]]


def empty_provider_maps() -> ProviderMaps:
    return {kind: {} for kind in ProviderKind}


@dataclass(eq=False)
class RuntimeNode:
    """
    The resolved state of one module definition at one scope identity.

    Attributes:
        name: The module name, used in diagnostics.
        definition: The definition this node instantiates.
        scope_id: The identity this node was instantiated under.
        initialized: Set once providers have been resolved; never reset.
        local: Providers visible to this module's own factories and hooks.
        exported: Providers the direct parent imports.
        propagated: Providers that keep flowing past the direct parent.
        origins: ``"kind:key"`` to the module that supplied it.
        callback_ctx: The merged context passed to lifecycle hooks.
        children: Nodes for each use edge, in declaration order.
    """

    name: str
    definition: ModuleDefinition
    scope_id: Hashable
    initialized: bool = False
    local: ProviderMaps = field(default_factory=empty_provider_maps)
    exported: ProviderMaps = field(default_factory=empty_provider_maps)
    propagated: ProviderMaps = field(default_factory=empty_provider_maps)
    origins: dict[str, ProviderOrigin] = field(default_factory=dict)
    callback_ctx: Optional[ProviderView] = None
    children: list["RuntimeNode"] = field(default_factory=list)

    def __repr__(self) -> str:
        return f"RuntimeNode({self.name!r}, scope_id={self.scope_id!r})"


class TreeBuilder:
    """Expands a root definition into runtime nodes, memoised by (definition, scope)."""

    def __init__(self):
        self._cache: dict[ModuleDefinition, dict[Hashable, RuntimeNode]] = {}

    def build(
        self, name: str, definition: ModuleDefinition, scope_id: Hashable
    ) -> RuntimeNode:
        by_scope = self._cache.setdefault(definition, {})
        existing = by_scope.get(scope_id)
        if existing is not None:
            logger.debug(f"Reusing runtime node for '{name}' at {scope_id!r}")
            return existing

        node = RuntimeNode(name, definition, scope_id)
        by_scope[scope_id] = node

        node.children = [
            self.build(
                edge.name,
                edge.definition,
                GLOBAL_SCOPE if edge.scope_id is None else edge.scope_id,
            )
            for edge in definition.uses
        ]
        logger.debug(
            f"Built runtime node for '{name}' with {len(node.children)} children"
        )
        return node
