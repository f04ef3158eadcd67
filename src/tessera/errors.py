__all__ = [
    "ModuleError",
    "ConfigurationError",
    "CollisionError",
    "PluginTypeError",
    "NotRunningError",
]


class ModuleError(Exception):
    """Base class for errors raised while building or running modules."""

    pass


class ConfigurationError(ModuleError, ValueError):
    """Raised when a builder call receives missing, malformed or reserved arguments."""

    pass


class CollisionError(ModuleError):
    """Raised when a provider key or extension name is declared twice."""

    pass


class PluginTypeError(ModuleError, TypeError):
    """Raised when `use()` is given something that is not a module, or a transform
    (or extension) does not return a module."""

    pass


class NotRunningError(ModuleError, RuntimeError):
    """Raised when a module's context is accessed while it is not running."""

    pass
