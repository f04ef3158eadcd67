"""
Sequencing of module start-up and shutdown.

A started module owns one runtime tree. Start-up walks the tree children
first (the *load order*), resolving each node's providers and then awaiting
its ``on_load`` callbacks one at a time. Shutdown awaits ``on_unload``
callbacks in the reverse order and then discards the tree.
"""

import inspect
import logging
from typing import Callable, Iterable, Optional

from tessera.context import ProviderView
from tessera.domain import ModuleDefinition, ScopeToken
from tessera.errors import NotRunningError
from tessera.resolver import ProviderResolver
from tessera.tree import RuntimeNode, TreeBuilder

__all__ = ["LifecycleOrchestrator", "load_order"]

logger = logging.getLogger(__name__)


def load_order(root: RuntimeNode) -> list[RuntimeNode]:
    """
    Post-order traversal of the runtime tree.

    Children are yielded before their parents, in use-edge declaration order,
    and a node shared by several parents is yielded once, at its first visit.
    """
    order: list[RuntimeNode] = []
    visited: set[RuntimeNode] = set()

    def visit(node: RuntimeNode) -> None:
        if node in visited:
            return
        visited.add(node)
        for child in node.children:
            visit(child)
        order.append(node)

    visit(root)
    return order


async def _run_callbacks(callbacks: Iterable[Callable], ctx: ProviderView) -> None:
    for callback in callbacks:
        result = callback(ctx)
        if inspect.isawaitable(result):
            await result


class LifecycleOrchestrator:
    """Drives one module through NotStarted -> Running -> NotStarted."""

    def __init__(self, name: str, definition: ModuleDefinition):
        self._name = name
        self._definition = definition
        self._tree: Optional[RuntimeNode] = None
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def context(self) -> ProviderView:
        if not (self._running and self._tree is not None):
            raise NotRunningError(f"Module '{self._name}' is not running")
        return self._tree.callback_ctx

    async def start(self) -> None:
        """
        Build the runtime tree, resolve providers and run ``on_load`` callbacks.

        Does nothing if already running. If resolution or any callback fails
        the tree is discarded and the error re-raised; ``on_load`` callbacks
        that already ran are not unwound.
        """
        if self._running:
            return

        tree = TreeBuilder().build(
            self._name, self._definition, ScopeToken(f"root:{self._name}")
        )
        order = load_order(tree)

        self._tree = tree
        self._running = True
        logger.debug(
            f"Starting '{self._name}', load order: {[node.name for node in order]}"
        )

        resolver = ProviderResolver()
        try:
            for node in order:
                await resolver.initialize(node)
                await _run_callbacks(node.definition.load_callbacks, node.callback_ctx)
        except BaseException:
            logger.warning(
                f"Start of '{self._name}' failed; discarding runtime tree "
                f"without running on_unload callbacks"
            )
            self._tree = None
            self._running = False
            raise

        logger.debug(f"Module '{self._name}' started")

    async def stop(self) -> None:
        """Run ``on_unload`` callbacks in reverse load order, then discard the tree.

        Does nothing if not running. The module is reset to not running even
        when a callback raises.
        """
        if not (self._running and self._tree is not None):
            return

        try:
            for node in reversed(load_order(self._tree)):
                await _run_callbacks(node.definition.unload_callbacks, node.callback_ctx)
        finally:
            self._running = False
            self._tree = None
            logger.debug(f"Module '{self._name}' stopped")
