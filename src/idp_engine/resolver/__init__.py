"""Attribute resolution engine: plugin graph, per-request context, built-in plugins."""

from idp_engine.resolver.connectors import (
    HTTPDataConnector,
    PrincipalDataConnector,
    StaticDataConnector,
)
from idp_engine.resolver.context import PluginOutcome, ResolutionContext, WorkContext
from idp_engine.resolver.definitions import (
    FunctionAttributeDefinition,
    ScopedAttributeDefinition,
    SimpleAttributeDefinition,
)
from idp_engine.resolver.dependency import (
    PluginDependency,
    gather_dependency_values,
    merged_dependency_values,
)
from idp_engine.resolver.engine import AttributeResolver
from idp_engine.resolver.plugin import AttributeDefinition, DataConnector, ResolverPlugin

__all__ = [
    "AttributeDefinition",
    "AttributeResolver",
    "DataConnector",
    "FunctionAttributeDefinition",
    "HTTPDataConnector",
    "PluginDependency",
    "PluginOutcome",
    "PrincipalDataConnector",
    "ResolutionContext",
    "ResolverPlugin",
    "ScopedAttributeDefinition",
    "SimpleAttributeDefinition",
    "StaticDataConnector",
    "WorkContext",
    "gather_dependency_values",
    "merged_dependency_values",
]
