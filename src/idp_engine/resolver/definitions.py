"""Built-in attribute definitions."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from idp_engine.component import validate_identifier
from idp_engine.models.attribute import (
    AttributeValue,
    IdPAttribute,
    ScopedStringAttributeValue,
    StringAttributeValue,
)
from idp_engine.resolver.context import ResolutionContext, WorkContext
from idp_engine.resolver.dependency import gather_dependency_values, merged_dependency_values
from idp_engine.resolver.plugin import AttributeDefinition

logger = logging.getLogger(__name__)


class SimpleAttributeDefinition(AttributeDefinition):
    """Releases the merged values of its dependencies unchanged."""

    async def _do_resolve(
        self, context: ResolutionContext, work_context: WorkContext
    ) -> IdPAttribute | None:
        values = merged_dependency_values(self, work_context, self.source_attribute_id)
        return IdPAttribute(id=self.id, values=values)


class ScopedAttributeDefinition(AttributeDefinition):
    """Qualifies every string dependency value with a fixed scope."""

    def __init__(self, plugin_id: str, *, scope: str, **kwargs: Any) -> None:
        super().__init__(plugin_id, **kwargs)
        self.scope = validate_identifier(scope, "scope")

    async def _do_resolve(
        self, context: ResolutionContext, work_context: WorkContext
    ) -> IdPAttribute | None:
        scoped: list[AttributeValue] = []
        for value in merged_dependency_values(self, work_context, self.source_attribute_id):
            if isinstance(value, StringAttributeValue):
                scoped.append(ScopedStringAttributeValue(value=value.value, scope=self.scope))
            else:
                logger.debug(
                    "Attribute %s: ignoring non-string value of type %s",
                    self.id,
                    type(value).__name__,
                )
        return IdPAttribute(id=self.id, values=scoped)


ValueFunction = Callable[
    [ResolutionContext, dict[str, list[AttributeValue]]],
    Iterable[AttributeValue | str] | Awaitable[Iterable[AttributeValue | str]] | None,
]


class FunctionAttributeDefinition(AttributeDefinition):
    """Computes values with a callable.

    The callable receives the resolution context and the gathered dependency
    values (``{source name: values}``) and returns values, plain strings, or
    ``None``. It may be a coroutine function.
    """

    def __init__(
        self,
        plugin_id: str,
        *,
        function: ValueFunction,
        **kwargs: Any,
    ) -> None:
        super().__init__(plugin_id, **kwargs)
        self.function = function

    async def _do_resolve(
        self, context: ResolutionContext, work_context: WorkContext
    ) -> IdPAttribute | None:
        gathered = gather_dependency_values(self, work_context, self.source_attribute_id)
        result = self.function(context, gathered)
        if inspect.isawaitable(result):
            result = await result
        if result is None:
            return None
        values: list[AttributeValue] = [
            StringAttributeValue.value_of(v) if isinstance(v, str) else v for v in result
        ]
        return IdPAttribute(id=self.id, values=values)
