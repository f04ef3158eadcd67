import pytest

from tessera import CollisionError, ConfigurationError, Module, PluginTypeError
from tessera.registry import ExtensionRegistry


def register(module: Module, name: str) -> Module:
    return module.decorate(f"handler_{name}", lambda ctx: f"handled {name}").on_load(
        lambda ctx: ctx.store.registered.append(name)
    )


@pytest.fixture
def handlers() -> Module:
    return Module("handlers").state("registered", [], scope="global").extend("register", register)


def test_extension_call_returns_a_new_module_without_mutating_the_receiver(handlers):
    app = Module("app").use(handlers)
    before = app.definition

    result = app.ext.register("x")

    assert isinstance(result, Module)
    assert result is not app
    assert result is not handlers
    assert result.name == "app"
    assert app.definition is before
    assert app.definition.load_callbacks == ()
    assert len(result.definition.load_callbacks) == 1


def test_extensions_chain_through_derived_modules(handlers):
    app = Module("app").use(handlers).ext.register("a").ext.register("b")

    assert [p.key for p in app.definition.providers] == ["handler_a", "handler_b"]


@pytest.mark.asyncio
async def test_registered_extension_runs_at_start():
    registered = []
    handlers = Module("handlers").state("registered", registered, scope="global").extend(
        "register", register
    )
    app = Module("app").use(handlers).ext.register("ping")

    await app.start()

    assert registered == ["ping"]
    assert app.context.handler_ping == "handled ping"


def test_extend_with_a_mapping_registers_each_name():
    module = Module("m").extend(
        {
            "with_port": lambda m, port: m.decorate("port", port),
            "with_host": lambda m, host: m.decorate("host", host),
        }
    )

    result = module.ext.with_port(80).ext.with_host("localhost")

    assert [p.key for p in result.definition.providers] == ["port", "host"]
    assert set(module.extensions) == {"with_port", "with_host"}


def test_extend_replaces_a_same_named_local_extension():
    module = (
        Module("m")
        .extend("x", lambda m: m.decorate("first", 1))
        .extend("x", lambda m: m.decorate("second", 2))
    )

    assert module.ext.x().definition.providers[0].key == "second"


@pytest.mark.parametrize(
    "call, match",
    [
        (lambda m: m.extend("x"), "requires a function"),
        (lambda m: m.extend("x", 5), "requires a callable"),
        (lambda m: m.extend({"x": 5}), "requires a callable"),
        (lambda m: m.extend(42), "expects a name or a mapping"),
    ],
)
def test_invalid_extend_arguments_raise(call, match):
    with pytest.raises(ConfigurationError, match=match):
        call(Module("m"))


def test_extension_name_collision_on_use_raises():
    first = Module("first").extend("x", lambda m: m)
    second = Module("second").extend("x", lambda m: m)

    with pytest.raises(
        CollisionError,
        match="Extension 'x' is already defined by module 'app' and cannot be merged from module 'second'",
    ):
        Module("app").use(first).use(second)


def test_local_extension_collides_with_plugin_extension():
    plugin = Module("plugin").extend("x", lambda m: m)

    with pytest.raises(CollisionError):
        Module("app").extend("x", lambda m: m).use(plugin)


def test_same_extension_arriving_twice_through_a_diamond_collides(handlers):
    left = Module("left").use(handlers)
    right = Module("right").use(handlers)

    with pytest.raises(
        CollisionError,
        match="Extension 'register' is already defined by module 'app' "
        "and cannot be merged from module 'right'",
    ):
        Module("app").use([left, right])


def test_extension_must_return_a_module():
    module = Module("m").extend("broken", lambda m: None)

    with pytest.raises(PluginTypeError, match="Extension 'broken' must return a Module"):
        module.ext.broken()


def test_ext_namespace_is_read_only(handlers):
    with pytest.raises(AttributeError):
        handlers.ext.register = lambda m: m
    with pytest.raises(AttributeError):
        del handlers.ext.register
    with pytest.raises(AttributeError, match="No extension named 'missing'"):
        handlers.ext.missing


def test_registry_merge_keeps_both_sides():
    left = ExtensionRegistry({"a": len})
    right = ExtensionRegistry({"b": len})

    merged = left.merged_with(right, "left", "right")

    assert dict(merged) == {"a": len, "b": len}
    assert dict(left) == {"a": len}
