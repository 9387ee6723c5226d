import logging

from graphml_loader.app.models.graph import PropertyType
from graphml_loader.app.services.schema.registry import KeyRegistry


def test_unknown_key_resolves_to_string(registry):
    assert registry.resolve_type("NOPE") is PropertyType.STRING
    assert registry.display_name("NOPE") == "NOPE"
    assert "NOPE" not in registry


def test_register_and_resolve(registry):
    registry.register("AGE", "age", PropertyType.INT, "node")
    assert registry.resolve_type("AGE") is PropertyType.INT
    assert registry.display_name("AGE") == "age"
    assert len(registry) == 1


def test_last_declaration_wins(registry):
    registry.register("W", "weight", PropertyType.INT)
    registry.register("W", "weight", PropertyType.DOUBLE)
    assert registry.resolve_type("W") is PropertyType.DOUBLE
    assert len(registry) == 1


def test_display_name_defaults_to_id(registry):
    registry.register("NAME")
    assert registry.display_name("NAME") == "NAME"
    assert "NAME" in registry


def test_registries_are_independent():
    a, b = KeyRegistry(), KeyRegistry()
    a.register("X", declared_type=PropertyType.LONG)
    assert b.resolve_type("X") is PropertyType.STRING


def test_redeclaration_is_logged_with_names_and_domains(registry, caplog):
    registry.register("W", "weight", PropertyType.INT, "edge")
    with caplog.at_level(logging.DEBUG, logger="graphml_loader.app.services.schema.registry"):
        registry.register("W", "w2", PropertyType.DOUBLE)
    assert caplog.records[-1].getMessage() == "Key W redeclared: weight INT for=edge -> w2 DOUBLE for=all"
