"""IdPAttribute and its value types."""

from __future__ import annotations

from enum import StrEnum
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field


class AttributeValue(BaseModel):
    """Base for attribute values. Values are immutable and compared by type and content."""

    model_config = ConfigDict(frozen=True)

    @property
    def display_value(self) -> str:
        return ""


class StringAttributeValue(AttributeValue):
    value: str

    @property
    def display_value(self) -> str:
        return self.value

    @classmethod
    def value_of(cls, text: str | None) -> AttributeValue:
        """Wrap ``text``, mapping ``None`` and ``""`` to the empty value constants."""
        if text is None:
            return EmptyAttributeValue.NULL
        if text == "":
            return EmptyAttributeValue.ZERO_LENGTH
        return cls(value=text)


class ScopedStringAttributeValue(StringAttributeValue):
    """A string value qualified by a security domain, e.g. ``member@example.org``."""

    scope: str

    @property
    def display_value(self) -> str:
        return f"{self.value}@{self.scope}"


class ByteAttributeValue(AttributeValue):
    value: bytes

    @property
    def display_value(self) -> str:
        return self.value.hex()


class EmptyKind(StrEnum):
    NULL = "null"
    ZERO_LENGTH = "zero_length"


class EmptyAttributeValue(AttributeValue):
    """Placeholder for a value that was present but had no content."""

    kind: EmptyKind

    NULL: ClassVar[EmptyAttributeValue]
    ZERO_LENGTH: ClassVar[EmptyAttributeValue]


EmptyAttributeValue.NULL = EmptyAttributeValue(kind=EmptyKind.NULL)
EmptyAttributeValue.ZERO_LENGTH = EmptyAttributeValue(kind=EmptyKind.ZERO_LENGTH)


class IdPAttribute(BaseModel):
    """A named identity attribute with an ordered sequence of values.

    Values accumulate as produced; duplicates are only collapsed when the
    resolver finalizes its output (see ``deduplicated``).
    """

    id: str
    values: list[AttributeValue] = Field(default_factory=list)

    def deduplicated(self) -> IdPAttribute:
        """Copy of this attribute with repeated values removed, first occurrence kept."""
        unique = list(dict.fromkeys(self.values))
        return self.model_copy(update={"values": unique})


class IdPRequestedAttribute(IdPAttribute):
    """An attribute requested by a relying party, e.g. from SAML 2 metadata."""

    is_required: bool = False
