"""
Tests for intent resolution
"""
import pytest

from treebot.errors import ResolutionFailure, ValidationFailure
from treebot.event_stream import EventStream
from treebot.intents import IntentResolver, load_registry
from treebot.intents.resolver import parse_arguments, to_number
from treebot.schemas import EventKind, IntentKind


@pytest.fixture
def registry():
    return load_registry()


@pytest.fixture
def resolver(registry):
    return IntentResolver(registry)


@pytest.mark.parametrize(
    "text",
    [
        "Hello there! Nice weather for chopping.",
        "I can't do that right now :)",
        "Sure, give me a second",
        "multi\nline reply without calls",
    ],
)
def test_text_without_call_is_conversational(resolver, text):
    intent = resolver.resolve(text)

    assert intent.kind is IntentKind.CONVERSATIONAL
    assert intent.text == text
    assert intent.capability_name is None


def test_stop_action_without_arguments(resolver):
    intent = resolver.resolve("stopAction()")

    assert intent.kind is IntentKind.COMMAND
    assert intent.capability_name == "stopAction"
    assert intent.parameters == {}


def test_numeric_string_is_coerced(resolver):
    intent = resolver.resolve('followPlayer({"distance":"3"})')

    assert intent.is_command
    assert intent.parameters["distance"] == 3
    assert isinstance(intent.parameters["distance"], int)
    assert "playerName" in intent.parameters


def test_fractional_distance_stays_float(resolver):
    intent = resolver.resolve('followPlayer({"distance": "2.5"})')

    assert intent.parameters["distance"] == 2.5


def test_missing_fields_get_defaults(resolver):
    intent = resolver.resolve('Sure! findTrees({"treeType": "birch"}) on my way')

    assert intent.capability_name == "findTrees"
    assert intent.parameters == {"treeType": "birch", "maxCount": 5}
    assert intent.text.startswith("Sure!")


def test_every_capability_gets_every_declared_field(registry, resolver):
    for capability in registry:
        intent = resolver.resolve(f"{capability.name}({{}})")

        assert intent.is_command
        assert set(intent.parameters) == set(capability.parameters)
        for name, spec in capability.parameters.items():
            assert intent.parameters[name] == spec.default


def test_unknown_function_is_conversational(resolver):
    text = 'Let me dance({"style": "wild"}) for you'
    intent = resolver.resolve(text)

    assert intent.kind is IntentKind.CONVERSATIONAL
    assert intent.text == text


def test_only_first_call_is_honored(resolver):
    intent = resolver.resolve('findTrees({"maxCount": 2}) and then followPlayer({"distance": 4})')

    assert intent.capability_name == "findTrees"
    assert intent.parameters["maxCount"] == 2


def test_malformed_arguments_fall_back_to_defaults(resolver):
    intent = resolver.resolve("findTrees({treeType: oak, maxCount: })")

    assert intent.is_command
    assert intent.parameters == {"treeType": "any", "maxCount": 5}


def test_nested_parentheses_do_not_crash(resolver):
    intent = resolver.resolve('findTrees({"treeType": "oak (the big one)"})')

    assert intent.is_command
    assert intent.parameters["treeType"] == "any"


def test_python_style_literal_is_accepted(resolver):
    intent = resolver.resolve("engage({'entityNames': ['zombie'], 'count': '2'})")

    assert intent.parameters["entityNames"] == ["zombie"]
    assert intent.parameters["count"] == 2
    assert intent.parameters["tool"] == "sword"


def test_null_target_reference_becomes_none(resolver):
    intent = resolver.resolve('followPlayer({"playerName": "null", "distance": 3})')

    assert intent.parameters["playerName"] is None
    assert intent.parameters["distance"] == 3


def test_null_string_only_special_for_target_references(resolver):
    intent = resolver.resolve('findTrees({"treeType": "null"})')

    assert intent.parameters["treeType"] == "null"


def test_invalid_value_uses_default(resolver):
    intent = resolver.resolve('findTrees({"maxCount": "lots"})')

    assert intent.parameters["maxCount"] == 5


def test_fractional_integer_field_uses_default(resolver):
    intent = resolver.resolve('engage({"entityNames": ["zombie"], "count": "2.5"})')

    assert intent.parameters["count"] == 1
    assert intent.parameters["entityNames"] == ["zombie"]


def test_wrong_type_uses_default(resolver):
    intent = resolver.resolve('checkInventory({"itemType": ["log"]})')

    assert intent.parameters["itemType"] == "all"


def test_issuer_is_recorded(resolver):
    intent = resolver.resolve("followPlayer({})", issuer="Steve")

    assert intent.issuer == "Steve"


@pytest.mark.parametrize("text", ["", "   ", None, 42])
def test_empty_or_non_text_is_unparsable(resolver, text):
    intent = resolver.resolve(text)

    assert intent.kind is IntentKind.UNPARSABLE


def test_unexpected_fault_is_unparsable(registry, monkeypatch):
    resolver = IntentResolver(registry)

    def explode(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(resolver, "_coerce", explode)
    intent = resolver.resolve("findTrees({})")

    assert intent.kind is IntentKind.UNPARSABLE
    assert intent.reason == "boom"


def test_resolution_failure_is_published(registry):
    events = EventStream()
    resolver = IntentResolver(registry, events)

    resolver.resolve("findTrees({not json})")

    failures = events.get_recent_events(EventKind.RESOLUTION_FAILURE)
    assert len(failures) == 1
    assert failures[0].data["capability"] == "findTrees"


def test_resolution_is_deterministic(resolver):
    text = 'engage({"entityNames": "zombie", "count": 3})'

    assert resolver.resolve(text) == resolver.resolve(text)


def test_parse_arguments_rejects_non_objects():
    with pytest.raises(ResolutionFailure):
        parse_arguments("[1, 2, 3]")
    assert parse_arguments("  ") == {}


def test_to_number():
    assert to_number("count", "3.0") == 3
    assert to_number("count", 4.5) == 4.5
    with pytest.raises(ValidationFailure):
        to_number("count", True)
    with pytest.raises(ValidationFailure):
        to_number("count", "nan")
