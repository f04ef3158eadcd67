"""
Resolution of the providers visible in, and exported from, each runtime node.

Each node keeps three maps per provider kind:

- ``local``: what the module's own factories and hooks can see;
- ``exported``: what the direct parent imports;
- ``propagated``: what keeps flowing past the direct parent.

Nodes must be resolved children first. Imports from children happen before
the node's own declarations are applied in order, so a factory sees every
imported provider plus the ones declared ahead of it.
"""

import inspect
import logging

from tessera.context import ProviderView, make_context
from tessera.domain import ProviderEntry, ProviderKind, ProviderMode, ProviderOrigin
from tessera.errors import CollisionError
from tessera.tree import ProviderMaps, RuntimeNode

__all__ = ["ProviderResolver", "origin_key"]

logger = logging.getLogger(__name__)


def origin_key(kind: ProviderKind, key: str) -> str:
    return f"{kind.value}:{key}"


class ProviderResolver:
    """Populates a runtime node's provider maps and callback context."""

    async def initialize(self, node: RuntimeNode) -> None:
        """Resolve ``node``'s providers. Does nothing if it is already initialized.

        Args:
            node: A node whose children have all been initialized.

        Raises:
            CollisionError: If two children export the same key, or an
                ``append`` declaration clashes with an imported key.
        """
        if node.initialized:
            return

        for child, edge in zip(node.children, node.definition.uses):
            self._import_child(node, child)
            if edge.transitive:
                for kind in ProviderKind:
                    node.exported[kind].update(child.propagated[kind])
                    node.propagated[kind].update(child.propagated[kind])

        for entry in node.definition.providers:
            await self._apply_entry(node, entry)

        node.callback_ctx = make_context(
            node.local[ProviderKind.DECORATOR], node.local[ProviderKind.STORE]
        )
        node.initialized = True
        logger.debug(
            f"Initialized '{node.name}': "
            f"{sorted(node.local[ProviderKind.DECORATOR])} decorators, "
            f"{sorted(node.local[ProviderKind.STORE])} store entries"
        )

    def _import_child(self, node: RuntimeNode, child: RuntimeNode) -> None:
        for kind in ProviderKind:
            for key, value in child.exported[kind].items():
                if key in node.local[kind]:
                    existing = node.origins.get(origin_key(kind, key))
                    raise CollisionError(
                        f"{kind.value} '{key}' imported by '{node.name}' from "
                        f"'{child.name}' collides with the one already from "
                        f"'{existing.module_name if existing else node.name}'"
                    )
                node.local[kind][key] = value
                node.origins[origin_key(kind, key)] = ProviderOrigin(
                    kind, key, child.name, True
                )

    async def _apply_entry(self, node: RuntimeNode, entry: ProviderEntry) -> None:
        kind, key = entry.kind, entry.key
        local = node.local[kind]

        if entry.mode is ProviderMode.APPEND and key in local:
            existing = node.origins.get(origin_key(kind, key))
            raise CollisionError(
                f"{kind.value} '{key}' declared by '{node.name}' collides with the "
                f"one from '{existing.module_name if existing else node.name}'. "
                f"Use mode='override' to replace it."
            )

        value = entry.value
        if entry.is_factory:
            value = value(self._factory_context(node.local))
            if inspect.isawaitable(value):
                value = await value

        if entry.mode is ProviderMode.OVERRIDE:
            node.exported[kind].pop(key, None)
            node.propagated[kind].pop(key, None)

        local[key] = value
        if entry.export:
            node.exported[kind][key] = value
            if entry.transitive:
                node.propagated[kind][key] = value

        node.origins[origin_key(kind, key)] = ProviderOrigin(
            kind, key, node.name, entry.export
        )

    @staticmethod
    def _factory_context(local: ProviderMaps) -> ProviderView:
        # Snapshot of decorators so far; sub-views track the live maps.
        return make_context(local[ProviderKind.DECORATOR], local[ProviderKind.STORE])

