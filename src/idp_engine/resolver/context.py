"""Per-request resolution state."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from idp_engine.errors import AttributeResolutionError
from idp_engine.models.attribute import AttributeValue, IdPAttribute

Columns = Mapping[str, list[AttributeValue]]


@dataclass(frozen=True)
class PluginOutcome:
    """Memoized result of one plugin for one request.

    ``resolved_by`` names the connector that actually produced the value when
    a failover connector stood in for the requested one.
    """

    plugin_id: str
    value: Any = None
    error: AttributeResolutionError | None = None
    resolved_by: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class WorkContext:
    """Memo table of plugin outcomes, keyed by plugin id. Never shared between requests."""

    def __init__(self) -> None:
        self._outcomes: dict[str, PluginOutcome] = {}

    def __contains__(self, plugin_id: object) -> bool:
        return plugin_id in self._outcomes

    def get(self, plugin_id: str) -> PluginOutcome | None:
        return self._outcomes.get(plugin_id)

    def record(self, outcome: PluginOutcome) -> None:
        if outcome.plugin_id in self._outcomes:
            raise RuntimeError(f"Plugin '{outcome.plugin_id}' already resolved in this context")
        self._outcomes[outcome.plugin_id] = outcome

    def resolved_attribute(self, definition_id: str) -> IdPAttribute | None:
        outcome = self._outcomes.get(definition_id)
        if outcome is None or outcome.failed:
            return None
        return outcome.value

    def resolved_columns(self, connector_id: str) -> Columns:
        outcome = self._outcomes.get(connector_id)
        if outcome is None or outcome.failed or outcome.value is None:
            return {}
        return outcome.value

    def outcomes(self) -> list[PluginOutcome]:
        return list(self._outcomes.values())


class ResolutionContext:
    """State for one resolve() call: who, what was asked for, and what came back.

    ``request_context`` is opaque to the engine and passed through to plugins.
    An empty ``requested_attributes`` means every definition that is not
    dependency-only.
    """

    def __init__(
        self,
        principal: str | None = None,
        requested_attributes: Iterable[str] = (),
        request_context: Any = None,
    ) -> None:
        self.principal = principal
        self.requested_attributes: tuple[str, ...] = tuple(dict.fromkeys(requested_attributes))
        self.request_context = request_context
        self.work_context = WorkContext()
        self.resolved_attributes: dict[str, IdPAttribute] = {}

    def resolved_definition(self, definition_id: str) -> IdPAttribute | None:
        return self.work_context.resolved_attribute(definition_id)

    def resolved_connector(self, connector_id: str) -> Columns | None:
        outcome = self.work_context.get(connector_id)
        if outcome is None or outcome.failed:
            return None
        return outcome.value
