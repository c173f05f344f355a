"""AttributeTranscoder interface.

A transcoder converts an IdPAttribute to one external representation and back.
It is responsible for enforcing the rule's activation condition; the registry
only hands out candidate rules. Shared encode/decode scaffolding lives in
``idp_engine.transcoding.support``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from idp_engine.component import InitializableComponent
from idp_engine.models.attribute import IdPAttribute

if TYPE_CHECKING:
    from idp_engine.transcoding.rule import TranscodingRule


class AttributeTranscoder(InitializableComponent, ABC):
    @property
    @abstractmethod
    def encoded_type(self) -> type:
        """The external type this transcoder produces and consumes."""

    @abstractmethod
    def encode(
        self,
        request_context: Any,
        attribute: IdPAttribute,
        to: type,
        rule: TranscodingRule,
    ) -> Any | None:
        """Encode ``attribute`` as an instance of ``to``; None when the rule is inactive.

        Raises AttributeEncodingError when the rule cannot be applied.
        """

    @abstractmethod
    def decode(self, request_context: Any, value: Any, rule: TranscodingRule) -> IdPAttribute | None:
        """Decode an external ``value`` into an IdPAttribute; None when the rule is inactive.

        Raises AttributeDecodingError when the rule cannot be applied.
        """

    @abstractmethod
    def get_encoded_name(self, rule: TranscodingRule) -> str | None:
        """Canonical external name for ``rule``, computed from the rule alone."""
