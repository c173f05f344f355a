"""TranscodingRule — binds a transcoder and its protocol parameters to an internal attribute id."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from idp_engine.transcoding.base import AttributeTranscoder

PROP_ID = "id"
PROP_TRANSCODER = "transcoder"
PROP_CONDITION = "activationCondition"
PROP_NAME = "name"
PROP_ENCODE_NO_VALUES = "encodeNoValues"
PROP_DECODE_NO_VALUES = "decodeNoValues"

# Map keys that correspond to named fields; anything else lands in ``properties``.
_FIELD_KEYS = {
    PROP_ID: "id",
    PROP_TRANSCODER: "transcoder",
    PROP_CONDITION: "activation_condition",
    PROP_NAME: "name",
    PROP_ENCODE_NO_VALUES: "encode_no_values",
    PROP_DECODE_NO_VALUES: "decode_no_values",
}

ActivationCondition = Callable[[Any], bool]


class TranscodingRule(BaseModel):
    """One encode/decode rule set.

    ``transcoder`` is either a live instance or the name of a registered
    transcoder factory; the registry replaces names with instances when it
    initializes. ``activation_condition`` receives the caller's request context;
    ``None`` means always active. ``properties`` carries protocol-specific keys
    (``nameFormat``, ``friendlyName``, ``namespace``...) in insertion order,
    as a read-only mapping.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    id: str | None = None
    transcoder: AttributeTranscoder | str
    activation_condition: ActivationCondition | None = None
    name: str | None = None
    encode_no_values: bool = False
    decode_no_values: bool = True
    properties: Mapping[str, Any] = Field(default_factory=dict, validate_default=True)

    @field_validator("properties", mode="after")
    @classmethod
    def _freeze_properties(cls, value: Mapping[str, Any]) -> Mapping[str, Any]:
        return MappingProxyType(dict(value))

    @classmethod
    def from_map(cls, mapping: Mapping[str, Any]) -> TranscodingRule:
        """Build a rule from the flat key/value form used in configuration."""
        fields: dict[str, Any] = {}
        properties: dict[str, Any] = {}
        for key, value in mapping.items():
            if key in _FIELD_KEYS:
                fields[_FIELD_KEYS[key]] = value
            else:
                properties[key] = value
        return cls(**fields, properties=properties)

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a key by its map name, covering both named fields and properties."""
        if key in _FIELD_KEYS:
            value = getattr(self, _FIELD_KEYS[key])
            return default if value is None else value
        return self.properties.get(key, default)

    def to_map(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for key, attr in _FIELD_KEYS.items():
            value = getattr(self, attr)
            if value is not None:
                result[key] = value
        result.update(self.properties)
        return result
