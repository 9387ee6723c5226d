from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional

import pytest

from graphml_loader.app.core.errors import StorageError
from graphml_loader.app.models.graph import EdgeRecord, EdgeRow, VertexRecord, VertexRow
from graphml_loader.app.services.schema.casting import TypeCaster
from graphml_loader.app.services.schema.registry import KeyRegistry
from graphml_loader.app.services.stores.base import GraphStore

GRAPHML_HEADER = '<?xml version="1.0" encoding="UTF-8"?>\n<graphml xmlns="http://graphml.graphdrawing.org/xmlns">\n<graph id="G" edgedefault="directed">\n'
GRAPHML_FOOTER = "\n</graph>\n</graphml>\n"


class MemoryStore(GraphStore):
    """GraphStore keeping committed rows in lists; records every call."""

    name = "memory"

    def __init__(self, existing: tuple = (), fail_on_commit: Optional[int] = None):
        self.graphs: Dict[str, Dict[str, list]] = {g: {"vertices": [], "edges": []} for g in existing}
        self.pending_vertices: List[tuple] = []
        self.pending_edges: List[tuple] = []
        self.commit_sizes: List[tuple] = []
        self.calls: List[str] = []
        self.builds: List[tuple] = []
        self.rollbacks = 0
        self.closed = False
        self.fail_on_commit = fail_on_commit

    def close(self) -> None:
        self.closed = True

    def graph_exists(self, graph: str) -> bool:
        return graph in self.graphs

    def create_graph(self, graph: str) -> None:
        self.calls.append(f"create:{graph}")
        self.graphs[graph] = {"vertices": [], "edges": []}

    def clear_graph(self, graph: str) -> None:
        self.calls.append(f"clear:{graph}")
        self.graphs[graph] = {"vertices": [], "edges": []}

    def drop_graph(self, graph: str) -> None:
        self.calls.append(f"drop:{graph}")
        self.graphs.pop(graph, None)

    def insert_vertex_rows(self, graph: str, rows: List[VertexRow]) -> None:
        self.pending_vertices.extend((graph, r) for r in rows)

    def insert_edge_rows(self, graph: str, rows: List[EdgeRow]) -> None:
        self.pending_edges.extend((graph, r) for r in rows)

    def commit(self) -> None:
        if self.fail_on_commit is not None and len(self.commit_sizes) + 1 == self.fail_on_commit:
            raise StorageError("connection lost", code="ECONN")
        for graph, row in self.pending_vertices:
            self.graphs.setdefault(graph, {"vertices": [], "edges": []})["vertices"].append(row)
        for graph, row in self.pending_edges:
            self.graphs.setdefault(graph, {"vertices": [], "edges": []})["edges"].append(row)
        self.commit_sizes.append((len(self.pending_vertices), len(self.pending_edges)))
        self.pending_vertices = []
        self.pending_edges = []

    def rollback(self) -> None:
        self.rollbacks += 1
        self.pending_vertices = []
        self.pending_edges = []

    def build_topology_and_indexes(self, graph: str, full_topology: bool = True) -> None:
        self.builds.append((graph, full_topology))


class RecordingLoader:
    """Stands in for BatchLoader when only the parser is under test."""

    def __init__(self):
        self.records: List[object] = []
        self.commit_checks = 0
        self.timer_resets = 0

    def emit_vertex(self, record: VertexRecord) -> None:
        self.records.append(record)

    def emit_edge(self, record: EdgeRecord) -> None:
        self.records.append(record)

    def commit_if_due(self) -> bool:
        self.commit_checks += 1
        return False

    def reset_timers(self) -> None:
        self.timer_resets += 1


class FakeClock:
    def __init__(self, start: float = 1000.0, step: float = 0.5):
        self.now = start
        self.step = step

    def __call__(self) -> float:
        self.now += self.step
        return self.now


@pytest.fixture
def registry() -> KeyRegistry:
    return KeyRegistry()


@pytest.fixture
def caster() -> TypeCaster:
    return TypeCaster()


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def recording_loader() -> RecordingLoader:
    return RecordingLoader()


@pytest.fixture
def write_graphml(tmp_path: Path):
    def _write(body: str, name: str = "graph.graphml") -> Path:
        path = tmp_path / name
        path.write_text(GRAPHML_HEADER + body + GRAPHML_FOOTER, encoding="utf-8")
        return path
    return _write
