"""Helpers shared by concrete transcoders.

These cover what every transcoder repeats: fetching the live transcoder from a
rule, honouring the activation condition, reading required properties, and
the per-value encode/decode loops with their no-values policy.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any, TypeVar

from idp_engine.errors import (
    AttributeDecodingError,
    AttributeEncodingError,
    AttributeTranscodingError,
    TranscoderReferenceError,
)
from idp_engine.models.attribute import AttributeValue, IdPAttribute
from idp_engine.transcoding.base import AttributeTranscoder
from idp_engine.transcoding.rule import TranscodingRule

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def get_transcoder(rule: TranscodingRule) -> AttributeTranscoder:
    """Return the live transcoder installed in ``rule``.

    Rules handed out by the registry always carry an instance; a factory name
    here means the rule was never installed.
    """
    if not isinstance(rule.transcoder, AttributeTranscoder):
        raise TranscoderReferenceError(
            f"Rule for '{rule.id}' has no installed transcoder (got {rule.transcoder!r})"
        )
    return rule.transcoder


def is_active(rule: TranscodingRule, request_context: Any) -> bool:
    condition = rule.activation_condition
    if condition is None:
        return True
    return bool(condition(request_context))


def require_property(
    rule: TranscodingRule,
    key: str,
    error_type: type[AttributeTranscodingError] = AttributeEncodingError,
) -> Any:
    """Fetch ``key`` from ``rule``, raising ``error_type`` when missing or blank."""
    value = rule.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise error_type(f"Required transcoder property '{key}' not found")
    return value


def encode_values(
    attribute: IdPAttribute,
    rule: TranscodingRule,
    encode_value: Callable[[AttributeValue], T | None],
    can_encode: Callable[[AttributeValue], bool] = lambda v: True,
) -> list[T]:
    """Encode each value of ``attribute`` in order.

    Values ``can_encode`` rejects are skipped with a warning. Ending up
    with nothing is an error unless the rule sets ``encode_no_values``.
    """
    encoded: list[T] = []
    for value in attribute.values:
        if not can_encode(value):
            logger.warning(
                "Attribute %s: skipping unsupported value type %s",
                attribute.id,
                type(value).__name__,
            )
            continue
        result = encode_value(value)
        if result is None:
            logger.warning("Attribute %s: value could not be encoded, skipping", attribute.id)
            continue
        encoded.append(result)

    if not encoded and not rule.encode_no_values:
        raise AttributeEncodingError(f"Attribute '{attribute.id}' did not have any encodable values")
    return encoded


def decode_values(
    label: str,
    raw_values: Iterable[R],
    rule: TranscodingRule,
    decode_value: Callable[[R], AttributeValue | None],
) -> list[AttributeValue]:
    """Decode each raw external value in order; ``label`` names the source in messages."""
    decoded: list[AttributeValue] = []
    for raw in raw_values:
        value = decode_value(raw)
        if value is None:
            logger.warning("%s: value could not be decoded, skipping", label)
            continue
        decoded.append(value)

    if not decoded and not rule.decode_no_values:
        raise AttributeDecodingError(f"{label} did not have any decodable values")
    return decoded
