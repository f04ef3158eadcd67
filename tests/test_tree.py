from tessera import Module
from tessera.domain import GLOBAL_SCOPE, ScopeToken
from tessera.lifecycle import load_order
from tessera.tree import TreeBuilder


def build(module: Module):
    return TreeBuilder().build(module.name, module.definition, ScopeToken(f"root:{module.name}"))


def test_diamond_shares_one_node_per_global_definition():
    shared = Module("shared")
    left = Module("left").use(shared)
    right = Module("right").use(shared)
    root = build(Module("root").use([left, right]))

    left_node, right_node = root.children
    assert left_node.children[0] is right_node.children[0]
    assert left_node.children[0].scope_id is GLOBAL_SCOPE
    assert [node.name for node in load_order(root)] == ["shared", "left", "right", "root"]


def test_locally_scoped_edges_get_their_own_nodes():
    shared = Module("shared")
    left = Module("left").use(shared, scope="local")
    right = Module("right").use(shared, scope="local")
    root = build(Module("root").use([left, right]))

    left_node, right_node = root.children
    assert left_node.children[0] is not right_node.children[0]
    assert [node.name for node in load_order(root)] == [
        "shared",
        "left",
        "shared",
        "right",
        "root",
    ]


def test_named_scope_ids_share_by_value():
    shared = Module("shared")
    left = Module("left").use(shared, scope="".join(["ten", "ant"]))
    right = Module("right").use(shared, scope="tenant")
    root = build(Module("root").use([left, right]))

    left_node, right_node = root.children
    assert left_node.children[0] is right_node.children[0]


def test_nodes_start_uninitialized():
    root = build(Module("root").use(Module("child").decorate("x", 1)))

    assert not root.initialized
    assert root.callback_ctx is None
    assert all(not values for values in root.children[0].local.values())


def test_chain_load_order_is_post_order():
    c = Module("c")
    b = Module("b").use(c)
    a = Module("a").use(b)

    assert [node.name for node in load_order(build(a))] == ["c", "b", "a"]
    assert [node.name for node in reversed(load_order(build(a)))] == ["a", "b", "c"]
