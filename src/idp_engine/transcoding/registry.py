"""AttributeTranscoderRegistry — maps internal attribute ids to protocol encodings and back.

Rules are registered while the registry is being configured and indexed once,
in ``initialize()``:

- forward: internal id -> installed rules, in registration order
- reverse: canonical external name -> installed rules, in registration order

Each installed rule is a copy of the registered one carrying the internal id
and a live, initialized transcoder. Lookups never raise for unknown ids,
names or types; they return an empty tuple.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable, Iterable, Mapping
from types import MappingProxyType
from typing import Any

from pydantic import ValidationError

from idp_engine.component import InitializableComponent, validate_identifier
from idp_engine.errors import TranscoderReferenceError
from idp_engine.models.attribute import IdPAttribute
from idp_engine.transcoding.base import AttributeTranscoder
from idp_engine.transcoding.rule import TranscodingRule

logger = logging.getLogger(__name__)

NamingFunction = Callable[[Any], str | None]
TranscoderFactory = Callable[[], AttributeTranscoder]


class NamingRegistry:
    """Ordered ``(type, function)`` pairs used to name external objects.

    An object is named by the function registered for the nearest type in its
    MRO; among equally near registrations the first one wins.
    """

    def __init__(self) -> None:
        self._entries: list[tuple[type, NamingFunction]] = []

    def add(self, target: type, function: NamingFunction) -> None:
        self._entries.append((target, function))

    def lookup(self, target: type) -> NamingFunction | None:
        mro = target.__mro__
        best: tuple[int, NamingFunction] | None = None
        for registered, function in self._entries:
            if registered not in mro:
                continue
            distance = mro.index(registered)
            if best is None or distance < best[0]:
                best = (distance, function)
        return best[1] if best else None

    def __len__(self) -> int:
        return len(self._entries)


def _as_rule(rule: TranscodingRule | Mapping[str, Any]) -> TranscodingRule:
    if isinstance(rule, TranscodingRule):
        return rule
    try:
        return TranscodingRule.from_map(rule)
    except ValidationError as e:
        raise TranscoderReferenceError(f"Invalid transcoding rule {dict(rule)!r}: {e}") from e


def _type_matches(encoded_type: type, requested: type) -> bool:
    """True when either type is assignable to the other."""
    if not isinstance(requested, type):
        return False
    return issubclass(requested, encoded_type) or issubclass(encoded_type, requested)


class AttributeTranscoderRegistry(InitializableComponent):
    def __init__(
        self,
        registry_id: str = "transcoders",
        *,
        naming_functions: Mapping[type, NamingFunction] | None = None,
        transcoder_factories: Mapping[str, TranscoderFactory] | None = None,
    ) -> None:
        super().__init__()
        self._id = validate_identifier(registry_id, "registry id")
        self._naming = NamingRegistry()
        self._factories: dict[str, TranscoderFactory] = {}
        self._pending: list[tuple[str, TranscodingRule]] = []
        self._by_id: dict[str, tuple[TranscodingRule, ...]] = {}
        self._by_name: dict[str, tuple[TranscodingRule, ...]] = {}

        for target, function in (naming_functions or {}).items():
            self.add_naming_function(target, function)
        for name, factory in (transcoder_factories or {}).items():
            self.add_transcoder_factory(name, factory)

    @property
    def id(self) -> str:
        return self._id

    # ----- Configuration -----

    def add_naming_function(self, target: type, function: NamingFunction) -> None:
        self._ensure_modifiable()
        self._naming.add(target, function)

    def add_transcoder_factory(self, name: str, factory: TranscoderFactory) -> None:
        self._ensure_modifiable()
        self._factories[validate_identifier(name, "transcoder factory name")] = factory

    def add_transcoding_rule(
        self, internal_id: str, rule: TranscodingRule | Mapping[str, Any]
    ) -> None:
        """Register ``rule`` for ``internal_id``. Several rules per id are allowed."""
        self._ensure_modifiable()
        internal_id = validate_identifier(internal_id, "attribute id")
        rule = _as_rule(rule)
        self._pending.append((internal_id, rule))

    def add_transcoding_rules(self, rules: Iterable[TranscodingRule | Mapping[str, Any]]) -> None:
        """Register rules that name their own internal id."""
        for rule in rules:
            rule = _as_rule(rule)
            self.add_transcoding_rule(validate_identifier(rule.id, "rule id"), rule)

    # ----- Lifecycle -----

    def _do_initialize(self) -> None:
        by_id: dict[str, list[TranscodingRule]] = defaultdict(list)
        by_name: dict[str, list[TranscodingRule]] = defaultdict(list)

        for internal_id, rule in self._pending:
            transcoder = self._resolve_transcoder(internal_id, rule)
            installed = rule.model_copy(
                update={
                    "id": internal_id,
                    "transcoder": transcoder,
                    "properties": MappingProxyType(dict(rule.properties)),
                }
            )
            by_id[internal_id].append(installed)

            name = transcoder.get_encoded_name(installed)
            if name:
                by_name[name].append(installed)
            else:
                logger.debug(
                    "Transcoder %s produced no encoded name for %s, indexed for encoding only",
                    type(transcoder).__name__,
                    internal_id,
                )

        self._by_id = {key: tuple(rules) for key, rules in by_id.items()}
        self._by_name = {key: tuple(rules) for key, rules in by_name.items()}
        self._pending = []
        logger.info(
            "Transcoder registry %s initialized: %d attribute ids, %d external names",
            self._id,
            len(self._by_id),
            len(self._by_name),
        )

    def _do_destroy(self) -> None:
        seen: set[int] = set()
        for rules in self._by_id.values():
            for rule in rules:
                transcoder = rule.transcoder
                if isinstance(transcoder, AttributeTranscoder) and id(transcoder) not in seen:
                    seen.add(id(transcoder))
                    transcoder.destroy()
        self._by_id = {}
        self._by_name = {}

    def _resolve_transcoder(self, internal_id: str, rule: TranscodingRule) -> AttributeTranscoder:
        reference = rule.transcoder
        if isinstance(reference, AttributeTranscoder):
            reference.initialize()
            return reference

        factory = self._factories.get(reference)
        if factory is None:
            raise TranscoderReferenceError(
                f"Rule for '{internal_id}' names unknown transcoder '{reference}'"
            )
        instance = factory()
        if not isinstance(instance, AttributeTranscoder):
            raise TranscoderReferenceError(
                f"Transcoder factory '{reference}' produced {type(instance).__name__}, "
                "not an AttributeTranscoder"
            )
        instance.initialize()
        logger.debug("Instantiated transcoder %s for %s", reference, internal_id)
        return instance

    # ----- Lookup -----

    def get_transcoding_properties(
        self, source: Any, external_type: type | None = None
    ) -> tuple[TranscodingRule, ...]:
        """Find the rules applicable to a conversion.

        With an IdPAttribute and an external type, returns the rules registered
        for the attribute's id whose transcoder handles that type (encoding).
        With a single external object, returns the rules registered under its
        canonical name (decoding).
        """
        if external_type is not None:
            if not isinstance(source, IdPAttribute):
                raise TypeError("encoding lookup requires an IdPAttribute")
            return self.rules_for_attribute(source, external_type)
        return self.rules_for_external(source)

    def rules_for_attribute(
        self, attribute: IdPAttribute, external_type: type
    ) -> tuple[TranscodingRule, ...]:
        self._ensure_initialized()
        rules = self._by_id.get(attribute.id, ())
        return tuple(
            rule for rule in rules if _type_matches(rule.transcoder.encoded_type, external_type)
        )

    def rules_for_external(self, external: Any) -> tuple[TranscodingRule, ...]:
        self._ensure_initialized()
        function = self._naming.lookup(type(external))
        if function is None:
            logger.warning("Unsupported object type for decoding: %s", type(external).__name__)
            return ()
        name = function(external)
        if name is None:
            logger.warning(
                "Naming function for %s produced no name, unable to decode", type(external).__name__
            )
            return ()
        return self._by_name.get(name, ())

    def _describe(self) -> str:
        return f"Transcoder registry '{self._id}'"
