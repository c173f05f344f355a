"""Exception hierarchy shared by the resolution engine and the transcoding registry.

Configuration errors are raised once, from ``initialize()``. Resolution and
transcoding errors are scoped to a single request or a single encode/decode call.
Lookup misses are never errors.
"""

from __future__ import annotations


class AttributeEngineError(Exception):
    """Base class for every error raised by this package."""


# ----- Component lifecycle -----


class ComponentStateError(AttributeEngineError, RuntimeError):
    """A component was used in the wrong lifecycle state."""


class UninitializedComponentError(ComponentStateError):
    pass


class UnmodifiableComponentError(ComponentStateError):
    pass


class DestroyedComponentError(ComponentStateError):
    pass


# ----- Configuration -----


class ConfigurationError(AttributeEngineError):
    """Invalid configuration detected at initialization. Fatal and never retried."""


class InvalidIdentifierError(ConfigurationError):
    pass


class DuplicatePluginError(ConfigurationError):
    pass


class MissingDependencyError(ConfigurationError):
    """A dependency or failover id names no plugin of the expected kind."""

    def __init__(self, plugin_id: str, missing_id: str, message: str | None = None) -> None:
        self.plugin_id = plugin_id
        self.missing_id = missing_id
        super().__init__(
            message or f"Plugin '{plugin_id}' depends on unknown plugin '{missing_id}'"
        )


class DependencyCycleError(ConfigurationError):
    """The combined plugin dependency graph contains a cycle."""

    def __init__(self, plugin_id: str, cycle: list[str]) -> None:
        self.plugin_id = plugin_id
        self.cycle = cycle
        super().__init__(
            f"Dependency cycle detected at plugin '{plugin_id}': {' -> '.join(cycle)}"
        )


class PluginValidationError(ConfigurationError):
    def __init__(self, plugin_id: str, message: str) -> None:
        self.plugin_id = plugin_id
        super().__init__(f"Plugin '{plugin_id}' failed validation: {message}")


class TranscoderReferenceError(ConfigurationError):
    pass


# ----- Resolution -----


class AttributeResolutionError(AttributeEngineError):
    """A plugin could not produce its result for the current request."""

    def __init__(self, message: str, *, plugin_id: str | None = None) -> None:
        self.plugin_id = plugin_id
        super().__init__(message)


class ResolutionCycleError(AttributeResolutionError):
    """A plugin was reached again while it was still being resolved."""


class DependencyResolutionError(AttributeResolutionError):
    """A plugin could not run because one of its dependencies failed."""


class DataConnectorError(AttributeResolutionError):
    """A data connector failed, including every connector on its failover chain."""


# ----- Transcoding -----


class AttributeTranscodingError(AttributeEngineError):
    pass


class AttributeEncodingError(AttributeTranscodingError):
    pass


class AttributeDecodingError(AttributeTranscodingError):
    pass
