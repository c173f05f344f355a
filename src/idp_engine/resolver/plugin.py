"""Resolver plugin interface: attribute definitions and data connectors.

Both kinds share an id, dependency declarations, and a validate/resolve
contract. Plugins are configured through their constructor and are read-only
once the resolver that owns them has initialized.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any

from idp_engine.component import InitializableComponent, validate_identifier
from idp_engine.errors import AttributeResolutionError, ConfigurationError, PluginValidationError
from idp_engine.models.attribute import AttributeValue, IdPAttribute
from idp_engine.resolver.context import Columns, ResolutionContext, WorkContext
from idp_engine.resolver.dependency import PluginDependency


class ResolverPlugin(InitializableComponent, ABC):
    """An identified unit of the resolution graph."""

    def __init__(
        self,
        plugin_id: str,
        *,
        attribute_dependencies: Iterable[PluginDependency] = (),
        connector_dependencies: Iterable[PluginDependency] = (),
    ) -> None:
        super().__init__()
        self._id = validate_identifier(plugin_id, "plugin id")
        self._attribute_dependencies = tuple(attribute_dependencies)
        self._connector_dependencies = tuple(connector_dependencies)

    @property
    def id(self) -> str:
        return self._id

    @property
    def attribute_dependencies(self) -> tuple[PluginDependency, ...]:
        return self._attribute_dependencies

    @property
    def connector_dependencies(self) -> tuple[PluginDependency, ...]:
        return self._connector_dependencies

    @property
    def dependencies(self) -> tuple[PluginDependency, ...]:
        return self._attribute_dependencies + self._connector_dependencies

    def validate(self) -> None:
        """Check that the plugin is usable. Raises a ConfigurationError if not.

        Any other exception from ``_do_validate`` is re-raised as
        ``PluginValidationError``.
        """
        self._ensure_initialized()
        try:
            self._do_validate()
        except ConfigurationError:
            raise
        except Exception as e:
            raise PluginValidationError(self.id, f"validation failed: {e}") from e

    def _do_validate(self) -> None:
        pass

    async def resolve(self, context: ResolutionContext, work_context: WorkContext) -> Any:
        """Produce this plugin's result. Dependencies are already resolved in ``work_context``."""
        self._ensure_initialized()
        return await self._do_resolve(context, work_context)

    @abstractmethod
    async def _do_resolve(self, context: ResolutionContext, work_context: WorkContext) -> Any:
        ...

    def _describe(self) -> str:
        return f"{type(self).__name__} '{self._id}'"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self._id!r})"


class AttributeDefinition(ResolverPlugin):
    """Produces at most one IdPAttribute, named by the definition's id.

    Args:
        dependency_only: Resolve only as a source for other plugins; never released.
        pre_requested: Always resolve, even when a request names other attributes.
        source_attribute_id: Connector column read when a connector dependency
            does not name its source attributes. Defaults to the definition id.
    """

    def __init__(
        self,
        plugin_id: str,
        *,
        dependency_only: bool = False,
        pre_requested: bool = False,
        source_attribute_id: str | None = None,
        attribute_dependencies: Iterable[PluginDependency] = (),
        connector_dependencies: Iterable[PluginDependency] = (),
    ) -> None:
        super().__init__(
            plugin_id,
            attribute_dependencies=attribute_dependencies,
            connector_dependencies=connector_dependencies,
        )
        self.dependency_only = dependency_only
        self.pre_requested = pre_requested
        self.source_attribute_id = (
            validate_identifier(source_attribute_id, "source attribute id")
            if source_attribute_id is not None
            else self.id
        )

    async def resolve(
        self, context: ResolutionContext, work_context: WorkContext
    ) -> IdPAttribute | None:
        attribute = await super().resolve(context, work_context)
        if attribute is not None and attribute.id != self.id:
            raise AttributeResolutionError(
                f"Attribute definition '{self.id}' produced attribute '{attribute.id}'",
                plugin_id=self.id,
            )
        return attribute

    @abstractmethod
    async def _do_resolve(
        self, context: ResolutionContext, work_context: WorkContext
    ) -> IdPAttribute | None:
        ...


class DataConnector(ResolverPlugin):
    """Produces raw columns (attribute name -> values) consumed by definitions.

    Args:
        failover_connector_id: Connector to use in this one's place when it
            fails to validate or resolve.
    """

    def __init__(
        self,
        plugin_id: str,
        *,
        failover_connector_id: str | None = None,
        attribute_dependencies: Iterable[PluginDependency] = (),
        connector_dependencies: Iterable[PluginDependency] = (),
    ) -> None:
        super().__init__(
            plugin_id,
            attribute_dependencies=attribute_dependencies,
            connector_dependencies=connector_dependencies,
        )
        self.failover_connector_id = (
            validate_identifier(failover_connector_id, "failover connector id")
            if failover_connector_id is not None
            else None
        )

    async def resolve(
        self, context: ResolutionContext, work_context: WorkContext
    ) -> dict[str, list[AttributeValue]]:
        columns = await super().resolve(context, work_context)
        return {name: list(values) for name, values in (columns or {}).items()}

    @abstractmethod
    async def _do_resolve(
        self, context: ResolutionContext, work_context: WorkContext
    ) -> Columns | None:
        ...
