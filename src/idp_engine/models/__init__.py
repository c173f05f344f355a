"""Attribute data models."""

from idp_engine.models.attribute import (
    AttributeValue,
    ByteAttributeValue,
    EmptyAttributeValue,
    EmptyKind,
    IdPAttribute,
    IdPRequestedAttribute,
    ScopedStringAttributeValue,
    StringAttributeValue,
)

__all__ = [
    "AttributeValue",
    "ByteAttributeValue",
    "EmptyAttributeValue",
    "EmptyKind",
    "IdPAttribute",
    "IdPRequestedAttribute",
    "ScopedStringAttributeValue",
    "StringAttributeValue",
]
