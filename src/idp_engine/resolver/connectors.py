"""Built-in data connectors."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any
from urllib.parse import quote, urlparse

import httpx

from idp_engine.component import validate_identifier
from idp_engine.config import EngineSettings, get_settings
from idp_engine.errors import DataConnectorError, PluginValidationError
from idp_engine.models.attribute import AttributeValue, StringAttributeValue
from idp_engine.resolver.context import Columns, ResolutionContext, WorkContext
from idp_engine.resolver.plugin import DataConnector

logger = logging.getLogger(__name__)


def _as_values(raw: Iterable[AttributeValue | str]) -> list[AttributeValue]:
    return [StringAttributeValue.value_of(v) if isinstance(v, str) else v for v in raw]


class StaticDataConnector(DataConnector):
    """Returns the same columns for every request."""

    def __init__(
        self,
        plugin_id: str,
        *,
        values: Mapping[str, Iterable[AttributeValue | str]],
        **kwargs: Any,
    ) -> None:
        super().__init__(plugin_id, **kwargs)
        self._columns = {name: _as_values(raw) for name, raw in values.items()}

    async def _do_resolve(self, context: ResolutionContext, work_context: WorkContext) -> Columns:
        return {name: list(values) for name, values in self._columns.items()}


class PrincipalDataConnector(DataConnector):
    """Exposes the request principal as a single-valued column."""

    def __init__(self, plugin_id: str, *, column: str = "principal", **kwargs: Any) -> None:
        super().__init__(plugin_id, **kwargs)
        self.column = validate_identifier(column, "column name")

    async def _do_resolve(self, context: ResolutionContext, work_context: WorkContext) -> Columns:
        if not context.principal:
            raise DataConnectorError("No principal in resolution context", plugin_id=self.id)
        return {self.column: [StringAttributeValue(value=context.principal)]}


class HTTPDataConnector(DataConnector):
    """Fetches a JSON object for the principal and maps its keys to columns.

    ``url_template`` may contain ``{principal}``, substituted URL-encoded. Scalar
    JSON members become one string value, arrays become several, ``null``
    becomes no value. Transport errors, non-2xx statuses and non-object
    payloads raise DataConnectorError so that failover applies.
    """

    def __init__(
        self,
        plugin_id: str,
        *,
        url_template: str,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        settings: EngineSettings | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(plugin_id, **kwargs)
        settings = settings or get_settings()
        self.url_template = url_template
        self.timeout = timeout if timeout is not None else settings.http_timeout
        self._headers = {"User-Agent": settings.http_user_agent, **(headers or {})}
        self._transport = transport

    def _do_validate(self) -> None:
        try:
            probe = self.url_template.format(principal="probe")
        except (KeyError, IndexError, ValueError, AttributeError) as e:
            raise PluginValidationError(self.id, f"invalid URL template: {e}") from e
        parsed = urlparse(probe)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise PluginValidationError(self.id, f"URL template must be absolute http(s): {probe}")

    async def _do_resolve(self, context: ResolutionContext, work_context: WorkContext) -> Columns:
        if not context.principal:
            raise DataConnectorError("No principal in resolution context", plugin_id=self.id)
        url = self.url_template.format(principal=quote(context.principal, safe=""))

        async with httpx.AsyncClient(
            follow_redirects=True,
            timeout=self.timeout,
            headers=self._headers,
            transport=self._transport,
        ) as client:
            try:
                resp = await client.get(url)
                resp.raise_for_status()
            except httpx.HTTPError as e:
                raise DataConnectorError(
                    f"HTTP data connector '{self.id}' request failed: {e}", plugin_id=self.id
                ) from e

        try:
            payload = resp.json()
        except ValueError as e:
            raise DataConnectorError(
                f"HTTP data connector '{self.id}' received invalid JSON", plugin_id=self.id
            ) from e
        if not isinstance(payload, dict):
            raise DataConnectorError(
                f"HTTP data connector '{self.id}' expected a JSON object, got {type(payload).__name__}",
                plugin_id=self.id,
            )

        columns: dict[str, list[AttributeValue]] = {}
        for key, raw in payload.items():
            columns[key] = _json_values(raw)
        logger.debug("HTTP data connector %s returned %d columns", self.id, len(columns))
        return columns


def _json_values(raw: Any) -> list[AttributeValue]:
    items = raw if isinstance(raw, list) else [raw]
    values: list[AttributeValue] = []
    for item in items:
        if item is None or isinstance(item, (dict, list)):
            continue
        if isinstance(item, bool):
            text = "true" if item else "false"
        else:
            text = str(item)
        values.append(StringAttributeValue.value_of(text))
    return values
