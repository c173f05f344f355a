"""AttributeResolver — validates the plugin graph once and runs one resolution pass per request.

Resolution walks dependencies depth-first. Each plugin runs at most once per
ResolutionContext; its outcome (value or failure) is memoized in the request's
WorkContext. A failing data connector is replaced by its failover chain, and
the substitute's output is recorded under the original connector's id.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import Any

from idp_engine.component import InitializableComponent, validate_identifier
from idp_engine.config import DefinitionFailurePolicy, EngineSettings, get_settings
from idp_engine.errors import (
    AttributeResolutionError,
    ConfigurationError,
    DataConnectorError,
    DependencyCycleError,
    DependencyResolutionError,
    DuplicatePluginError,
    MissingDependencyError,
    ResolutionCycleError,
)
from idp_engine.models.attribute import IdPAttribute
from idp_engine.resolver.context import PluginOutcome, ResolutionContext
from idp_engine.resolver.graph import find_cycle
from idp_engine.resolver.plugin import AttributeDefinition, DataConnector, ResolverPlugin

logger = logging.getLogger(__name__)

# Failures that end the whole pass regardless of the definition failure policy.
_ALWAYS_FATAL = (DataConnectorError, ResolutionCycleError)


class AttributeResolver(InitializableComponent):
    """Owns a set of attribute definitions and data connectors."""

    def __init__(
        self,
        resolver_id: str,
        *,
        attribute_definitions: Iterable[AttributeDefinition] = (),
        data_connectors: Iterable[DataConnector] = (),
        settings: EngineSettings | None = None,
    ) -> None:
        super().__init__()
        self._id = validate_identifier(resolver_id, "resolver id")
        self._settings = settings or get_settings()
        self._definitions: dict[str, AttributeDefinition] = {}
        self._connectors: dict[str, DataConnector] = {}
        self._plugins: dict[str, ResolverPlugin] = {}
        self._definition_list = list(attribute_definitions)
        self._connector_list = list(data_connectors)

    @property
    def id(self) -> str:
        return self._id

    @property
    def settings(self) -> EngineSettings:
        return self._settings

    @property
    def attribute_definitions(self) -> Mapping[str, AttributeDefinition]:
        self._ensure_initialized()
        return MappingProxyType(self._definitions)

    @property
    def data_connectors(self) -> Mapping[str, DataConnector]:
        self._ensure_initialized()
        return MappingProxyType(self._connectors)

    def add_attribute_definition(self, definition: AttributeDefinition) -> None:
        self._ensure_modifiable()
        self._definition_list.append(definition)

    def add_data_connector(self, connector: DataConnector) -> None:
        self._ensure_modifiable()
        self._connector_list.append(connector)

    # ----- Initialization -----

    def _do_initialize(self) -> None:
        for plugin in [*self._definition_list, *self._connector_list]:
            if plugin.id in self._plugins:
                raise DuplicatePluginError(
                    f"Resolver '{self._id}' has more than one plugin with id '{plugin.id}'"
                )
            self._plugins[plugin.id] = plugin
            if isinstance(plugin, AttributeDefinition):
                self._definitions[plugin.id] = plugin
            else:
                self._connectors[plugin.id] = plugin

        self._check_references()

        cycle = find_cycle(self._dependency_graph())
        if cycle:
            raise DependencyCycleError(cycle[0], cycle)

        for plugin in self._plugins.values():
            plugin.initialize()
        for definition in self._definitions.values():
            definition.validate()
        for connector in self._connectors.values():
            self._validate_connector(connector)

        logger.info(
            "Resolver %s initialized with %d attribute definitions and %d data connectors",
            self._id,
            len(self._definitions),
            len(self._connectors),
        )

    def _check_references(self) -> None:
        for plugin in self._plugins.values():
            for dep in plugin.attribute_dependencies:
                if dep.plugin_id not in self._definitions:
                    raise MissingDependencyError(
                        plugin.id,
                        dep.plugin_id,
                        f"Plugin '{plugin.id}' depends on '{dep.plugin_id}', "
                        "which is not an attribute definition",
                    )
            for dep in plugin.connector_dependencies:
                if dep.plugin_id not in self._connectors:
                    raise MissingDependencyError(
                        plugin.id,
                        dep.plugin_id,
                        f"Plugin '{plugin.id}' depends on '{dep.plugin_id}', "
                        "which is not a data connector",
                    )
        for connector in self._connectors.values():
            failover_id = connector.failover_connector_id
            if failover_id is not None and failover_id not in self._connectors:
                raise MissingDependencyError(
                    connector.id,
                    failover_id,
                    f"Data connector '{connector.id}' fails over to unknown connector '{failover_id}'",
                )

    def _dependency_graph(self) -> dict[str, list[str]]:
        graph: dict[str, list[str]] = {}
        for plugin in self._plugins.values():
            edges = [dep.plugin_id for dep in plugin.dependencies]
            if isinstance(plugin, DataConnector) and plugin.failover_connector_id:
                edges.append(plugin.failover_connector_id)
            graph[plugin.id] = edges
        return graph

    def _validate_connector(self, connector: DataConnector) -> None:
        """Validate a connector, falling back along its failover chain."""
        try:
            connector.validate()
            return
        except ConfigurationError as e:
            first_error = e

        # References and failover loops were rejected before validation runs.
        next_id = connector.failover_connector_id
        while next_id is not None:
            failover = self._connectors[next_id]
            try:
                failover.validate()
            except ConfigurationError:
                next_id = failover.failover_connector_id
                continue
            logger.warning(
                "Data connector %s failed validation (%s); failover connector %s is valid",
                connector.id,
                first_error,
                failover.id,
            )
            return

        raise first_error

    def _do_destroy(self) -> None:
        for plugin in self._plugins.values():
            plugin.destroy()

    # ----- Resolution -----

    async def resolve_attributes(self, context: ResolutionContext) -> dict[str, IdPAttribute]:
        """Resolve the requested attributes for one request.

        Returns a mapping of attribute id to IdPAttribute with duplicate values
        removed, dependency-only and (by default) empty attributes omitted.
        The same mapping is stored on ``context.resolved_attributes``.

        Raises:
            AttributeResolutionError: a definition failed under the ``abort``
                policy, or a data connector and its failover chain failed.
        """
        self._ensure_initialized()
        targets = self._target_ids(context)
        logger.debug("Resolver %s resolving %s for %s", self._id, targets, context.principal)

        for definition_id in targets:
            try:
                await self._resolve_plugin(definition_id, context, [])
            except _ALWAYS_FATAL:
                raise
            except AttributeResolutionError as e:
                if self._settings.definition_failure_policy is not DefinitionFailurePolicy.SKIP:
                    raise
                logger.warning("Skipping attribute %s: %s", definition_id, e)

        resolved = self._finalize(context, targets)
        context.resolved_attributes = resolved
        return resolved

    def _target_ids(self, context: ResolutionContext) -> list[str]:
        if not context.requested_attributes:
            return [d.id for d in self._definitions.values() if not d.dependency_only]

        targets: list[str] = []
        for requested_id in context.requested_attributes:
            if requested_id in self._definitions:
                targets.append(requested_id)
            else:
                logger.debug("Requested attribute %s has no definition", requested_id)
        for definition in self._definitions.values():
            if definition.pre_requested and definition.id not in targets:
                targets.append(definition.id)
        return targets

    async def _resolve_plugin(
        self, plugin_id: str, context: ResolutionContext, resolving: list[str]
    ) -> Any:
        work = context.work_context
        outcome = work.get(plugin_id)
        if outcome is not None:
            logger.debug("Plugin %s already resolved", plugin_id)
            if outcome.error is not None:
                raise outcome.error
            return outcome.value

        if plugin_id in resolving:
            raise ResolutionCycleError(
                f"Plugin '{plugin_id}' reached again while resolving {' -> '.join(resolving)}",
                plugin_id=plugin_id,
            )

        plugin = self._plugins[plugin_id]
        resolving.append(plugin_id)
        try:
            if isinstance(plugin, DataConnector):
                value, resolved_by = await self._resolve_connector(plugin, context, resolving)
            else:
                await self._resolve_dependencies(plugin, context, resolving)
                value, resolved_by = await self._invoke(plugin, context), plugin_id
        except AttributeResolutionError as e:
            work.record(PluginOutcome(plugin_id=plugin_id, error=e))
            raise
        finally:
            resolving.pop()

        work.record(PluginOutcome(plugin_id=plugin_id, value=value, resolved_by=resolved_by))
        logger.debug("Plugin %s resolved", plugin_id)
        return value

    async def _resolve_dependencies(
        self, plugin: ResolverPlugin, context: ResolutionContext, resolving: list[str]
    ) -> None:
        for dep in plugin.dependencies:
            try:
                await self._resolve_plugin(dep.plugin_id, context, resolving)
            except _ALWAYS_FATAL:
                raise
            except AttributeResolutionError as e:
                raise DependencyResolutionError(
                    f"Plugin '{plugin.id}' cannot resolve: dependency '{dep.plugin_id}' failed",
                    plugin_id=plugin.id,
                ) from e

    async def _resolve_connector(
        self, connector: DataConnector, context: ResolutionContext, resolving: list[str]
    ) -> tuple[Any, str]:
        try:
            await self._resolve_dependencies(connector, context, resolving)
            return await self._invoke(connector, context), connector.id
        except ResolutionCycleError:
            raise
        except AttributeResolutionError as e:
            failover_id = connector.failover_connector_id
            if failover_id is None:
                if isinstance(e, DataConnectorError) and e.plugin_id == connector.id:
                    raise
                raise DataConnectorError(
                    f"Data connector '{connector.id}' failed: {e}", plugin_id=connector.id
                ) from e
            logger.warning(
                "Data connector %s failed (%s); failing over to %s", connector.id, e, failover_id
            )

        try:
            value = await self._resolve_plugin(failover_id, context, resolving)
        except DataConnectorError as e:
            raise DataConnectorError(
                f"Data connector '{connector.id}' and its failover chain failed",
                plugin_id=connector.id,
            ) from e
        failover_outcome = context.work_context.get(failover_id)
        resolved_by = (
            failover_outcome.resolved_by if failover_outcome is not None else None
        ) or failover_id
        return value, resolved_by

    async def _invoke(self, plugin: ResolverPlugin, context: ResolutionContext) -> Any:
        try:
            return await plugin.resolve(context, context.work_context)
        except AttributeResolutionError as e:
            if e.plugin_id is None:
                e.plugin_id = plugin.id
            raise
        except Exception as e:
            raise AttributeResolutionError(
                f"Plugin '{plugin.id}' failed: {e}", plugin_id=plugin.id
            ) from e

    def _finalize(self, context: ResolutionContext, targets: list[str]) -> dict[str, IdPAttribute]:
        resolved: dict[str, IdPAttribute] = {}
        for definition_id in targets:
            if self._definitions[definition_id].dependency_only:
                continue
            attribute = context.work_context.resolved_attribute(definition_id)
            if attribute is None:
                continue
            attribute = attribute.deduplicated()
            if not attribute.values and self._settings.strip_empty_attributes:
                logger.debug("Dropping attribute %s with no values", attribute.id)
                continue
            resolved[attribute.id] = attribute
        return resolved

    def _describe(self) -> str:
        return f"AttributeResolver '{self._id}'"
