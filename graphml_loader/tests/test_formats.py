import pytest

from graphml_loader.app.core.errors import ConfigurationError, GraphMLParseError
from graphml_loader.app.services.parsing.formats import NEO4J, TINKERPOP, get_convention


def test_neo4j_ids_drop_type_tag():
    assert NEO4J.decode_id("v12", "node") == 12
    assert NEO4J.decode_id("n0", "node") == 0
    assert NEO4J.decode_id("e7", "edge") == 7


def test_tinkerpop_ids_are_bare_integers():
    assert TINKERPOP.decode_id("12", "node") == 12


@pytest.mark.parametrize("convention, raw", [
    (TINKERPOP, "v12"),
    (TINKERPOP, "1.5"),
    (NEO4J, "12x"),
    (NEO4J, "n"),
    (TINKERPOP, "99999999999999999999"),
])
def test_bad_ids_are_parse_errors(convention, raw):
    with pytest.raises(GraphMLParseError) as exc:
        convention.decode_id(raw, "node")
    assert exc.value.context["value"] == raw


def test_missing_id_attribute():
    with pytest.raises(GraphMLParseError, match="source"):
        TINKERPOP.decode_id(None, "edge", "source")


def test_label_conventions():
    assert NEO4J.vertex_label(":Person") == "Person"
    assert NEO4J.edge_label("KNOWS") == "KNOWS"
    assert TINKERPOP.vertex_label("Person") == "Person"
    assert NEO4J.label_key("vertex") == "labels"
    assert NEO4J.label_key("edge") == "label"
    assert TINKERPOP.label_key("vertex") == "labelV"
    assert TINKERPOP.label_key("edge") == "labelE"


def test_neo4j_vertex_label_needs_delimiter():
    with pytest.raises(GraphMLParseError):
        NEO4J.vertex_label("Person", vertex_id=3)


def test_get_convention():
    assert get_convention("neo4j") is NEO4J
    with pytest.raises(ConfigurationError):
        get_convention("gexf")
