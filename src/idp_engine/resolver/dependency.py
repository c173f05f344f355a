"""Plugin dependencies and helpers that collect dependency output for a plugin."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, field_validator

from idp_engine.component import validate_identifier
from idp_engine.models.attribute import AttributeValue

if TYPE_CHECKING:
    from idp_engine.resolver.context import WorkContext
    from idp_engine.resolver.plugin import ResolverPlugin


class PluginDependency(BaseModel):
    """Reference to another plugin, optionally narrowed to some of its source attributes."""

    model_config = ConfigDict(frozen=True)

    plugin_id: str
    source_attributes: tuple[str, ...] = ()

    @field_validator("plugin_id")
    @classmethod
    def _check_plugin_id(cls, value: str) -> str:
        return validate_identifier(value, "dependency plugin id")


def gather_dependency_values(
    plugin: ResolverPlugin,
    work_context: WorkContext,
    default_source: str | None = None,
) -> dict[str, list[AttributeValue]]:
    """Collect the already-resolved output of ``plugin``'s dependencies.

    Attribute definition dependencies contribute their attribute under its id.
    Data connector dependencies contribute the columns named in the dependency,
    or ``default_source`` when none are named, or every column when neither is set.
    Insertion order follows the dependency declaration order.
    """
    gathered: dict[str, list[AttributeValue]] = {}

    for dep in plugin.attribute_dependencies:
        attribute = work_context.resolved_attribute(dep.plugin_id)
        if attribute is None:
            continue
        gathered.setdefault(attribute.id, []).extend(attribute.values)

    for dep in plugin.connector_dependencies:
        columns = work_context.resolved_columns(dep.plugin_id)
        if dep.source_attributes:
            names: tuple[str, ...] = dep.source_attributes
        elif default_source is not None:
            names = (default_source,)
        else:
            names = tuple(columns)
        for name in names:
            values = columns.get(name)
            if values:
                gathered.setdefault(name, []).extend(values)

    return gathered


def merged_dependency_values(
    plugin: ResolverPlugin,
    work_context: WorkContext,
    default_source: str | None = None,
) -> list[AttributeValue]:
    """Flatten ``gather_dependency_values`` into one ordered list."""
    merged: list[AttributeValue] = []
    for values in gather_dependency_values(plugin, work_context, default_source).values():
        merged.extend(values)
    return merged
