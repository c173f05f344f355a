"""SAML-shaped attribute models and their transcoders.

The models are plain pydantic objects carrying what a SAML attribute carries
(name, format or namespace, friendly name, string values); XML marshalling is
out of scope. Plain, scoped and base64 byte values share one transcoder shape
and differ only in how a single value becomes text. ``register_saml_support``
wires the naming functions and the ``SAML2String``, ``SAML1String``,
``SAML2ScopedString``, ``SAML1ScopedString`` and ``SAML2Byte`` factories into
a registry.
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

from idp_engine.errors import (
    AttributeDecodingError,
    AttributeEncodingError,
    AttributeTranscodingError,
)
from idp_engine.models.attribute import (
    AttributeValue,
    ByteAttributeValue,
    IdPAttribute,
    IdPRequestedAttribute,
    ScopedStringAttributeValue,
    StringAttributeValue,
)
from idp_engine.transcoding.base import AttributeTranscoder
from idp_engine.transcoding.rule import PROP_ID, PROP_NAME, TranscodingRule
from idp_engine.transcoding.support import (
    decode_values,
    encode_values,
    is_active,
    require_property,
)

if TYPE_CHECKING:
    from idp_engine.transcoding.registry import AttributeTranscoderRegistry

logger = logging.getLogger(__name__)

PROP_NAME_FORMAT = "nameFormat"
PROP_FRIENDLY_NAME = "friendlyName"
PROP_NAMESPACE = "namespace"
PROP_SCOPE_DELIMITER = "scopeDelimiter"

DEFAULT_SCOPE_DELIMITER = "@"

SAML2_URI_REFERENCE = "urn:oasis:names:tc:SAML:2.0:attrname-format:uri"
SAML2_UNSPECIFIED = "urn:oasis:names:tc:SAML:2.0:attrname-format:unspecified"
SAML1_ATTR_NAMESPACE_URI = "urn:mace:shibboleth:1.0:attributeNamespace:uri"


# ----- Models -----


class SAML2Attribute(BaseModel):
    name: str | None = None
    name_format: str | None = None
    friendly_name: str | None = None
    values: list[str] = Field(default_factory=list)


class SAML2RequestedAttribute(SAML2Attribute):
    is_required: bool = False


class SAML1AttributeDesignator(BaseModel):
    name: str | None = None
    namespace: str | None = None


class SAML1Attribute(SAML1AttributeDesignator):
    values: list[str] = Field(default_factory=list)


# ----- Naming -----


def saml2_name(attribute: SAML2Attribute) -> str | None:
    """Canonical name ``SAML2:{format}name``; a missing format means unspecified."""
    if attribute.name is None:
        return None
    return f"SAML2:{{{attribute.name_format or SAML2_UNSPECIFIED}}}{attribute.name}"


def saml1_name(designator: SAML1AttributeDesignator) -> str | None:
    if designator.name is None or designator.namespace is None:
        return None
    return f"SAML1:{{{designator.namespace}}}{designator.name}"


# ----- Value codecs -----


class _StringValueCodec:
    """Maps string attribute values to and from SAML value text."""

    def _can_encode(self, value: AttributeValue) -> bool:
        return isinstance(value, StringAttributeValue)

    def _encode_value(self, value: AttributeValue, rule: TranscodingRule) -> str | None:
        return value.value if isinstance(value, StringAttributeValue) else None

    def _decode_value(self, text: str, rule: TranscodingRule) -> AttributeValue | None:
        return StringAttributeValue.value_of(text)


class _ScopedStringValueCodec(_StringValueCodec):
    """Scoped values written inline as ``value{delimiter}scope``."""

    def _can_encode(self, value: AttributeValue) -> bool:
        return isinstance(value, ScopedStringAttributeValue)

    def _encode_value(self, value: AttributeValue, rule: TranscodingRule) -> str | None:
        if not isinstance(value, ScopedStringAttributeValue):
            return None
        return f"{value.value}{_scope_delimiter(rule)}{value.scope}"

    def _decode_value(self, text: str, rule: TranscodingRule) -> AttributeValue | None:
        separator = _scope_delimiter(rule, AttributeDecodingError)
        value, delimiter, scope = text.rpartition(separator)
        if not delimiter or not value or not scope:
            return StringAttributeValue.value_of(text)
        return ScopedStringAttributeValue(value=value, scope=scope)


class _ByteValueCodec(_StringValueCodec):
    """Byte values carried as base64 text."""

    def _can_encode(self, value: AttributeValue) -> bool:
        return isinstance(value, ByteAttributeValue)

    def _encode_value(self, value: AttributeValue, rule: TranscodingRule) -> str | None:
        if not isinstance(value, ByteAttributeValue):
            return None
        return base64.b64encode(value.value).decode("ascii")

    def _decode_value(self, text: str, rule: TranscodingRule) -> AttributeValue | None:
        if not text:
            return None
        try:
            return ByteAttributeValue(value=base64.b64decode(text, validate=True))
        except binascii.Error:
            return None


def _scope_delimiter(
    rule: TranscodingRule,
    error_type: type[AttributeTranscodingError] = AttributeEncodingError,
) -> str:
    delimiter = rule.get(PROP_SCOPE_DELIMITER, DEFAULT_SCOPE_DELIMITER)
    if not isinstance(delimiter, str) or not delimiter:
        raise error_type(f"Invalid scope delimiter for '{rule.id}': {delimiter!r}")
    return delimiter


# ----- Transcoders -----


class SAML2StringAttributeTranscoder(_StringValueCodec, AttributeTranscoder):
    """Encodes string values as a SAML 2 Attribute or RequestedAttribute."""

    @property
    def encoded_type(self) -> type:
        return SAML2Attribute

    def get_encoded_name(self, rule: TranscodingRule) -> str | None:
        try:
            return saml2_name(self._build(None, SAML2Attribute, rule, []))
        except AttributeEncodingError:
            return None

    def encode(
        self,
        request_context: Any,
        attribute: IdPAttribute,
        to: type,
        rule: TranscodingRule,
    ) -> SAML2Attribute | None:
        self._ensure_initialized()
        if not is_active(rule, request_context):
            logger.debug("Rule for %s inactive, skipping SAML 2 encoding", attribute.id)
            return None
        values = encode_values(
            attribute, rule, lambda v: self._encode_value(v, rule), self._can_encode
        )
        return self._build(attribute, to, rule, values)

    def decode(
        self, request_context: Any, value: SAML2Attribute, rule: TranscodingRule
    ) -> IdPAttribute | None:
        self._ensure_initialized()
        if not is_active(rule, request_context):
            logger.debug("Rule for %s inactive, skipping SAML 2 decoding", value.name)
            return None
        attribute_id = require_property(rule, PROP_ID, AttributeDecodingError)
        values = decode_values(
            f"SAML 2 attribute {value.name}",
            value.values,
            rule,
            lambda text: self._decode_value(text, rule),
        )
        if isinstance(value, SAML2RequestedAttribute):
            return IdPRequestedAttribute(id=attribute_id, values=values, is_required=value.is_required)
        return IdPAttribute(id=attribute_id, values=values)

    def _build(
        self,
        attribute: IdPAttribute | None,
        to: type,
        rule: TranscodingRule,
        values: list[str],
    ) -> SAML2Attribute:
        name = require_property(rule, PROP_NAME)
        if not isinstance(to, type) or not issubclass(to, SAML2Attribute):
            raise AttributeEncodingError(f"Unsupported target object type: {to!r}")

        fields: dict[str, Any] = {
            "name": name,
            "name_format": rule.get(PROP_NAME_FORMAT, SAML2_URI_REFERENCE),
            "values": values,
        }
        friendly_name = rule.get(PROP_FRIENDLY_NAME, attribute.id if attribute else "")
        if friendly_name and friendly_name.strip():
            fields["friendly_name"] = friendly_name
        if issubclass(to, SAML2RequestedAttribute) and isinstance(attribute, IdPRequestedAttribute):
            fields["is_required"] = attribute.is_required
        return to(**fields)


class SAML1StringAttributeTranscoder(_StringValueCodec, AttributeTranscoder):
    """Encodes string values as a SAML 1 Attribute, or a valueless AttributeDesignator."""

    @property
    def encoded_type(self) -> type:
        return SAML1AttributeDesignator

    def get_encoded_name(self, rule: TranscodingRule) -> str | None:
        try:
            return saml1_name(self._build(None, SAML1AttributeDesignator, rule, []))
        except AttributeEncodingError:
            return None

    def encode(
        self,
        request_context: Any,
        attribute: IdPAttribute,
        to: type,
        rule: TranscodingRule,
    ) -> SAML1AttributeDesignator | None:
        self._ensure_initialized()
        if not is_active(rule, request_context):
            logger.debug("Rule for %s inactive, skipping SAML 1 encoding", attribute.id)
            return None
        values = encode_values(
            attribute, rule, lambda v: self._encode_value(v, rule), self._can_encode
        )
        return self._build(attribute, to, rule, values)

    def decode(
        self, request_context: Any, value: SAML1AttributeDesignator, rule: TranscodingRule
    ) -> IdPAttribute | None:
        self._ensure_initialized()
        if not is_active(rule, request_context):
            logger.debug("Rule for %s inactive, skipping SAML 1 decoding", value.name)
            return None
        attribute_id = require_property(rule, PROP_ID, AttributeDecodingError)
        raw = value.values if isinstance(value, SAML1Attribute) else []
        values = decode_values(
            f"SAML 1 attribute {value.name}",
            raw,
            rule,
            lambda text: self._decode_value(text, rule),
        )
        if isinstance(value, SAML1Attribute):
            return IdPAttribute(id=attribute_id, values=values)
        return IdPRequestedAttribute(id=attribute_id, values=values)

    def _build(
        self,
        attribute: IdPAttribute | None,
        to: type,
        rule: TranscodingRule,
        values: list[str],
    ) -> SAML1AttributeDesignator:
        if attribute is not None and attribute.values and not values:
            raise AttributeEncodingError(f"Failed to encode any values for attribute {attribute.id}")
        name = require_property(rule, PROP_NAME)
        namespace = rule.get(PROP_NAMESPACE, SAML1_ATTR_NAMESPACE_URI)

        if isinstance(to, type) and issubclass(to, SAML1Attribute):
            if not values:
                raise AttributeEncodingError("Unable to encode a SAML 1 Attribute with no values")
            return to(name=name, namespace=namespace, values=values)
        if isinstance(to, type) and issubclass(to, SAML1AttributeDesignator):
            if values:
                logger.warning("Lossy conversion of %s to AttributeDesignator", name)
            return to(name=name, namespace=namespace)
        raise AttributeEncodingError(f"Unsupported target object type: {to!r}")


class SAML2ScopedStringAttributeTranscoder(_ScopedStringValueCodec, SAML2StringAttributeTranscoder):
    """Scoped values as ``value@scope`` text; ``scopeDelimiter`` replaces ``@``."""


class SAML1ScopedStringAttributeTranscoder(_ScopedStringValueCodec, SAML1StringAttributeTranscoder):
    pass


class SAML2ByteAttributeTranscoder(_ByteValueCodec, SAML2StringAttributeTranscoder):
    """SAML 2 encoding of byte values as base64 text. Undecodable text is skipped."""


def register_saml_support(registry: AttributeTranscoderRegistry) -> None:
    """Install SAML naming functions and transcoder factories into ``registry``."""
    registry.add_naming_function(SAML2Attribute, saml2_name)
    registry.add_naming_function(SAML1AttributeDesignator, saml1_name)
    registry.add_transcoder_factory("SAML2String", SAML2StringAttributeTranscoder)
    registry.add_transcoder_factory("SAML1String", SAML1StringAttributeTranscoder)
    registry.add_transcoder_factory("SAML2ScopedString", SAML2ScopedStringAttributeTranscoder)
    registry.add_transcoder_factory("SAML1ScopedString", SAML1ScopedStringAttributeTranscoder)
    registry.add_transcoder_factory("SAML2Byte", SAML2ByteAttributeTranscoder)
