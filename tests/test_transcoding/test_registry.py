"""Tests for AttributeTranscoderRegistry indexing and lookup."""

from __future__ import annotations

import pytest

from idp_engine.errors import (
    AttributeEncodingError,
    ConfigurationError,
    TranscoderReferenceError,
    UninitializedComponentError,
    UnmodifiableComponentError,
)
from idp_engine.models.attribute import IdPAttribute, StringAttributeValue
from idp_engine.transcoding import (
    PROP_NAME,
    AttributeTranscoder,
    AttributeTranscoderRegistry,
    NamingRegistry,
    TranscodingRule,
    get_transcoder,
    is_active,
    require_property,
)


class Pair:
    def __init__(self, first: str, second: str | None = None) -> None:
        self.first = first
        self.second = second


class MyPair(Pair):
    pass


def _pair_name(pair: Pair) -> str:
    return "{Pair}" + pair.first


class PairTranscoder(AttributeTranscoder):
    """Encodes an attribute's first value as ``Pair(name, value)``."""

    @property
    def encoded_type(self) -> type:
        return Pair

    def encode(self, request_context, attribute, to, rule):
        if not is_active(rule, request_context):
            return None
        name = require_property(rule, PROP_NAME)
        if not attribute.values:
            raise AttributeEncodingError(f"{attribute.id} has no values")
        return to(name, attribute.values[0].display_value)

    def decode(self, request_context, value, rule):
        if not is_active(rule, request_context):
            return None
        return IdPAttribute(id=rule.id, values=[StringAttributeValue.value_of(value.second)])

    def get_encoded_name(self, rule):
        return "{Pair}" + rule.name if rule.name else None


def _attribute(attribute_id: str = "foo", *values: str) -> IdPAttribute:
    return IdPAttribute(id=attribute_id, values=[StringAttributeValue(value=v) for v in values])


def _registry() -> AttributeTranscoderRegistry:
    registry = AttributeTranscoderRegistry(
        naming_functions={Pair: _pair_name},
        transcoder_factories={"Pair": PairTranscoder},
    )
    registry.add_transcoding_rule("foo", TranscodingRule(transcoder=PairTranscoder(), name="bar"))
    registry.add_transcoding_rule("foo", {"transcoder": "Pair", "name": "baz"})
    registry.add_transcoding_rule(
        "foo",
        TranscodingRule(transcoder=PairTranscoder(), name="ban", activation_condition=lambda ctx: False),
    )
    registry.add_transcoding_rules([{"id": "foo2", "transcoder": "Pair", "name": "baz"}])
    registry.initialize()
    return registry


class TestForwardLookup:
    def test_rules_in_registration_order(self) -> None:
        rules = _registry().get_transcoding_properties(_attribute(), Pair)
        assert [r.name for r in rules] == ["bar", "baz", "ban"]
        assert all(r.id == "foo" for r in rules)

    def test_installed_rules_carry_live_transcoders(self) -> None:
        for rule in _registry().get_transcoding_properties(_attribute(), Pair):
            transcoder = get_transcoder(rule)
            assert isinstance(transcoder, PairTranscoder)
            assert transcoder.is_initialized

    def test_encode_through_rules(self) -> None:
        attribute = _attribute("foo", "value")
        encoded = [
            get_transcoder(rule).encode(None, attribute, Pair, rule)
            for rule in _registry().get_transcoding_properties(attribute, Pair)
        ]
        assert [(p.first, p.second) for p in encoded if p is not None] == [
            ("bar", "value"),
            ("baz", "value"),
        ]
        assert encoded[2] is None

    def test_subtype_target(self) -> None:
        registry = _registry()
        rules = registry.get_transcoding_properties(_attribute(), MyPair)
        assert len(rules) == 3
        pair = get_transcoder(rules[0]).encode(None, _attribute("foo", "v"), MyPair, rules[0])
        assert isinstance(pair, MyPair)

    def test_unrelated_type_is_empty(self) -> None:
        assert _registry().get_transcoding_properties(_attribute(), str) == ()

    def test_unknown_id_is_empty(self) -> None:
        assert _registry().get_transcoding_properties(_attribute("nobody"), Pair) == ()

    def test_external_type_requires_attribute(self) -> None:
        with pytest.raises(TypeError):
            _registry().get_transcoding_properties(Pair("bar"), Pair)


class TestReverseLookup:
    def test_shared_name_in_registration_order(self) -> None:
        rules = _registry().get_transcoding_properties(Pair("baz", "x"))
        assert [r.id for r in rules] == ["foo", "foo2"]

    def test_decode_through_rules(self) -> None:
        registry = _registry()
        incoming = Pair("bar", "hello")
        decoded = [
            get_transcoder(rule).decode(None, incoming, rule)
            for rule in registry.get_transcoding_properties(incoming)
        ]
        assert decoded == [_attribute("foo", "hello")]

    def test_subtype_instance_uses_base_naming(self) -> None:
        assert [r.id for r in _registry().get_transcoding_properties(MyPair("baz"))] == ["foo", "foo2"]

    def test_inactive_rule_decodes_to_none(self) -> None:
        (rule,) = _registry().get_transcoding_properties(Pair("ban", "x"))
        assert get_transcoder(rule).decode(None, Pair("ban", "x"), rule) is None

    def test_unknown_name_is_empty(self) -> None:
        assert _registry().get_transcoding_properties(Pair("nope")) == ()

    def test_unsupported_type_is_empty(self) -> None:
        assert _registry().get_transcoding_properties("just a string") == ()


class TestConfiguration:
    def test_registered_rule_left_untouched(self) -> None:
        rule = TranscodingRule(transcoder="Pair", name="bar")
        registry = AttributeTranscoderRegistry(transcoder_factories={"Pair": PairTranscoder})
        registry.add_transcoding_rule("foo", rule)
        registry.initialize()

        (installed,) = registry.get_transcoding_properties(_attribute(), Pair)
        assert rule.id is None
        assert rule.transcoder == "Pair"
        assert installed.id == "foo"
        assert installed is not rule

    def test_unknown_factory_fails_initialize(self) -> None:
        registry = AttributeTranscoderRegistry()
        registry.add_transcoding_rule("foo", {"transcoder": "Missing", "name": "bar"})
        with pytest.raises(TranscoderReferenceError, match="Missing"):
            registry.initialize()

    def test_rule_map_without_transcoder(self) -> None:
        registry = AttributeTranscoderRegistry()
        with pytest.raises(TranscoderReferenceError, match="Invalid transcoding rule"):
            registry.add_transcoding_rule("foo", {"name": "bar"})
        with pytest.raises(ConfigurationError):
            registry.add_transcoding_rules([{"id": "foo", "name": "bar"}])

    def test_installed_properties_are_read_only(self) -> None:
        source = {"transcoder": "Pair", "name": "bar", "color": "blue"}
        registry = AttributeTranscoderRegistry(transcoder_factories={"Pair": PairTranscoder})
        registry.add_transcoding_rule("foo", source)
        registry.initialize()
        source["color"] = "red"

        (installed,) = registry.get_transcoding_properties(_attribute(), Pair)
        with pytest.raises(TypeError):
            installed.properties["color"] = "green"
        (again,) = registry.get_transcoding_properties(_attribute(), Pair)
        assert again.get("color") == "blue"

    def test_factory_must_build_a_transcoder(self) -> None:
        registry = AttributeTranscoderRegistry(transcoder_factories={"Bad": object})
        registry.add_transcoding_rule("foo", {"transcoder": "Bad", "name": "bar"})
        with pytest.raises(TranscoderReferenceError):
            registry.initialize()

    def test_rule_without_name_is_encode_only(self) -> None:
        registry = AttributeTranscoderRegistry(naming_functions={Pair: _pair_name})
        registry.add_transcoding_rule("foo", TranscodingRule(transcoder=PairTranscoder()))
        registry.initialize()
        assert len(registry.get_transcoding_properties(_attribute(), Pair)) == 1
        assert registry.get_transcoding_properties(Pair("")) == ()

    def test_lookup_before_initialize(self) -> None:
        with pytest.raises(UninitializedComponentError):
            AttributeTranscoderRegistry().get_transcoding_properties(Pair("bar"))

    def test_read_only_after_initialize(self) -> None:
        registry = _registry()
        with pytest.raises(UnmodifiableComponentError):
            registry.add_transcoding_rule("late", {"transcoder": "Pair", "name": "x"})
        with pytest.raises(UnmodifiableComponentError):
            registry.add_naming_function(MyPair, _pair_name)

    def test_destroy_destroys_transcoders(self) -> None:
        registry = _registry()
        (rule, *_) = registry.get_transcoding_properties(_attribute(), Pair)
        registry.destroy()
        assert get_transcoder(rule).is_destroyed


class TestNamingRegistry:
    def test_nearest_type_wins(self) -> None:
        naming = NamingRegistry()
        naming.add(Pair, lambda p: "base")
        naming.add(MyPair, lambda p: "sub")
        assert naming.lookup(MyPair)(MyPair("x")) == "sub"
        assert naming.lookup(Pair)(Pair("x")) == "base"

    def test_object_catch_all(self) -> None:
        naming = NamingRegistry()
        naming.add(object, repr)
        naming.add(Pair, _pair_name)
        assert naming.lookup(MyPair) is _pair_name
        assert naming.lookup(int) is repr

    def test_no_match(self) -> None:
        assert NamingRegistry().lookup(Pair) is None
