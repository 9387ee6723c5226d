import sqlite3

import pytest

from graphml_loader.app.core.errors import (
    CastError,
    ConfigurationError,
    GraphExistsError,
    GraphNotFoundError,
    StorageError,
)
from graphml_loader.app.core.settings import Settings
from graphml_loader.app.models.run import ImportOptions
from graphml_loader.app.services.pipeline import ImportPipeline, import_graphml

from .conftest import FakeClock, MemoryStore

PEOPLE = (
    '<key id="NAME" for="node" attr.name="NAME" attr.type="string"/>'
    '<key id="AGE" for="node" attr.name="AGE" attr.type="int"/>'
    '<node id="1"><data key="labelV">person</data><data key="NAME">Ada</data><data key="AGE">37</data></node>'
    '<node id="2"><data key="NAME">Bob</data></node>'
    '<node id="3"/>'
    '<edge id="10" source="1" target="2"><data key="labelE">knows</data></edge>'
    '<edge id="11" source="2" target="3"/>'
)


def options(path, **kw):
    params = dict(filename=path, graph_name="people", uppercase=False)
    params.update(kw)
    return ImportOptions(**params)


def run(store, path, **kw):
    pipeline = ImportPipeline(Settings(), store=store, clock=FakeClock())
    try:
        return pipeline.run(options(path, **kw))
    finally:
        pipeline.close()


def test_single_vertex_end_to_end(memory_store, write_graphml):
    path = write_graphml(
        '<key id="NAME" attr.type="string"/><node id="1"><data key="NAME">Ada</data></node>'
    )
    summary = run(memory_store, path)

    rows = memory_store.graphs["PEOPLE"]["vertices"]
    assert [(r.vid, r.label, r.key, r.value) for r in rows] == [(1, "vertex", "NAME", "Ada")]
    assert summary.vertices == 1 and summary.edges == 0
    assert memory_store.closed


def test_typed_rows_and_placeholders(memory_store, write_graphml):
    run(memory_store, write_graphml(PEOPLE))

    vertices = memory_store.graphs["PEOPLE"]["vertices"]
    age = next(r for r in vertices if r.key == "AGE")
    assert (age.type_code, age.value, age.number) == (2, "37", 37)
    # one placeholder per property-less element
    assert sum(r.is_placeholder for r in vertices) == 1
    edges = memory_store.graphs["PEOPLE"]["edges"]
    assert sum(r.is_placeholder for r in edges) == 2
    assert [r.label for r in edges] == ["knows", "edge"]


def test_uppercase_option(memory_store, write_graphml):
    run(memory_store, write_graphml(PEOPLE), uppercase=True)
    labels = {r.label for r in memory_store.graphs["PEOPLE"]["vertices"]}
    assert labels == {"PERSON", "VERTEX"}


def test_batches_and_post_load(memory_store, write_graphml):
    summary = run(memory_store, write_graphml(PEOPLE), batch_size=2)

    # commits at 2 and 4 items, then the terminal commit
    assert summary.commits == 3
    assert memory_store.builds == [("PEOPLE", True)]


def test_indexes_only_and_no_post_load(write_graphml):
    store = MemoryStore()
    run(store, write_graphml(PEOPLE), build_topology=False)
    assert store.builds == [("PEOPLE", False)]

    store = MemoryStore()
    run(store, write_graphml(PEOPLE), post_load=False)
    assert store.builds == []


def test_skip_then_limit(memory_store, write_graphml):
    summary = run(memory_store, write_graphml(PEOPLE), skip_items=2, num_items=2)

    assert summary.skipped == 2
    assert [r.vid for r in memory_store.graphs["PEOPLE"]["vertices"]] == [3]
    assert [r.eid for r in memory_store.graphs["PEOPLE"]["edges"]] == [10]


def test_create_refuses_existing_graph(write_graphml):
    store = MemoryStore(existing=("PEOPLE",))
    with pytest.raises(GraphExistsError):
        run(store, write_graphml(PEOPLE))
    assert store.commit_sizes == []


def test_append_requires_existing_graph(memory_store, write_graphml):
    with pytest.raises(GraphNotFoundError):
        run(memory_store, write_graphml(PEOPLE), action="append")


def test_lifecycle_actions(write_graphml):
    path = write_graphml(PEOPLE)

    store = MemoryStore(existing=("PEOPLE",))
    run(store, path, action="TRUNCATE")
    assert store.calls == ["clear:PEOPLE"]

    store = MemoryStore(existing=("PEOPLE",))
    run(store, path, action="REPLACE")
    assert store.calls == ["drop:PEOPLE", "create:PEOPLE"]

    store = MemoryStore()
    run(store, path, action="TRUNCATE")
    assert store.calls == ["create:PEOPLE"]


def test_missing_file_fails_before_any_write(memory_store, tmp_path):
    with pytest.raises(ConfigurationError):
        run(memory_store, tmp_path / "nope.graphml")
    assert memory_store.calls == []


def test_cast_failure_rolls_back(write_graphml):
    store = MemoryStore()
    body = '<key id="AGE" attr.type="int"/>' + "".join(f'<node id="{i}"/>' for i in range(1, 4))
    body += '<node id="4"><data key="AGE">abc</data></node>'
    with pytest.raises(CastError):
        run(store, write_graphml(body), batch_size=2)

    # the first batch stays committed, the uncommitted vertex 3 is rolled back
    assert [r.vid for r in store.graphs["PEOPLE"]["vertices"]] == [1, 2]
    assert store.rollbacks == 1
    assert store.closed


def test_storage_failure_propagates(write_graphml):
    store = MemoryStore(fail_on_commit=2)
    with pytest.raises(StorageError):
        run(store, write_graphml(PEOPLE), batch_size=2)
    assert store.rollbacks == 1
    assert len(store.graphs["PEOPLE"]["vertices"]) == 3


def test_resume_with_skip_completes_the_graph(tmp_path, write_graphml):
    path = write_graphml(PEOPLE)
    settings = Settings(store_backend="sqlite", sqlite_path=tmp_path / "g.sqlite")

    first = import_graphml(options(path, num_items=2), settings)
    second = import_graphml(options(path, action="APPEND", skip_items=2), settings)
    assert (first.vertices, second.vertices, second.edges) == (2, 1, 2)

    conn = sqlite3.connect(str(tmp_path / "g.sqlite"))
    try:
        vids = [r[0] for r in conn.execute('SELECT DISTINCT vid FROM "PEOPLEVT$" ORDER BY vid')]
        topology = conn.execute('SELECT eid, svid, dvid, el FROM "PEOPLEGT$" ORDER BY eid').fetchall()
    finally:
        conn.close()
    assert vids == [1, 2, 3]
    assert topology == [(10, 1, 2, "knows"), (11, 2, 3, "edge")]


def test_neo4j_format_end_to_end(memory_store, write_graphml):
    body = (
        '<node id="n1" labels=":Person"><data key="labels">:Person</data><data key="name">Ada</data></node>'
        '<node id="n2"/>'
        '<edge id="e0" source="n1" target="n2" label="KNOWS"><data key="label">KNOWS</data></edge>'
    )
    run(memory_store, write_graphml(body), source_format="neo4j")

    vertices = memory_store.graphs["PEOPLE"]["vertices"]
    assert [(r.vid, r.label) for r in vertices] == [(1, "Person"), (2, "vertex")]
    (edge,) = memory_store.graphs["PEOPLE"]["edges"]
    assert (edge.eid, edge.svid, edge.dvid, edge.label) == (0, 1, 2, "KNOWS")


def test_options_validation():
    with pytest.raises(ConfigurationError, match="graph_name"):
        ImportOptions.build(filename="x.graphml", graph_name="bad name")
    with pytest.raises(ConfigurationError, match="batch_size"):
        ImportOptions.build(filename="x.graphml", graph_name="g", batch_size=-1)
    opts = ImportOptions.build(filename="x.graphml", graph_name="g", action="replace", source_format="neo4j")
    assert (opts.action, opts.source_format, opts.storage_graph_name) == ("REPLACE", "NEO4J", "G")
