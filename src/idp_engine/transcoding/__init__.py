"""Attribute transcoding rules, the transcoder interface, and the registry that indexes them."""

from idp_engine.transcoding.base import AttributeTranscoder
from idp_engine.transcoding.registry import AttributeTranscoderRegistry, NamingRegistry
from idp_engine.transcoding.rule import (
    PROP_CONDITION,
    PROP_DECODE_NO_VALUES,
    PROP_ENCODE_NO_VALUES,
    PROP_ID,
    PROP_NAME,
    PROP_TRANSCODER,
    TranscodingRule,
)
from idp_engine.transcoding.support import (
    decode_values,
    encode_values,
    get_transcoder,
    is_active,
    require_property,
)

__all__ = [
    "PROP_CONDITION",
    "PROP_DECODE_NO_VALUES",
    "PROP_ENCODE_NO_VALUES",
    "PROP_ID",
    "PROP_NAME",
    "PROP_TRANSCODER",
    "AttributeTranscoder",
    "AttributeTranscoderRegistry",
    "NamingRegistry",
    "TranscodingRule",
    "decode_values",
    "encode_values",
    "get_transcoder",
    "is_active",
    "require_property",
]
