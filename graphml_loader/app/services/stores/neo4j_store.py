from __future__ import annotations
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from graphml_loader.app.core.errors import StorageError
from graphml_loader.app.models.graph import EdgeRow, VertexRow, row_typed_value
from graphml_loader.app.services.stores.base import GraphStore

try:
    from neo4j import GraphDatabase
    from neo4j.exceptions import DriverError, Neo4jError
except ImportError:
    GraphDatabase = None

logger = logging.getLogger(__name__)

VERTEX_CYPHER = """
UNWIND $rows AS row
MERGE (v:GraphVertex {graph: $graph, vid: row.vid})
SET v.label = row.label
SET v += row.props
"""

EDGE_CYPHER = """
UNWIND $rows AS row
MERGE (s:GraphVertex {graph: $graph, vid: row.svid})
MERGE (d:GraphVertex {graph: $graph, vid: row.dvid})
CREATE (s)-[e:GRAPH_EDGE {graph: $graph, eid: row.eid, label: row.label}]->(d)
SET e += row.props
"""


def fold_vertex_rows(rows: List[VertexRow]) -> List[Dict[str, Any]]:
    """Collapse per-property rows back into one parameter map per vertex."""
    by_vid: Dict[int, Dict[str, Any]] = {}
    for r in rows:
        item = by_vid.setdefault(r.vid, {"vid": r.vid, "label": r.label, "props": {}})
        if not r.is_placeholder:
            item["props"][r.key] = row_typed_value(r.type_code, r.value, r.number)
    return list(by_vid.values())


def fold_edge_rows(rows: List[EdgeRow]) -> List[Dict[str, Any]]:
    by_eid: Dict[int, Dict[str, Any]] = {}
    for r in rows:
        item = by_eid.setdefault(
            r.eid, {"eid": r.eid, "svid": r.svid, "dvid": r.dvid, "label": r.label, "props": {}}
        )
        if not r.is_placeholder:
            item["props"][r.key] = row_typed_value(r.type_code, r.value, r.number)
    return list(by_eid.values())


class Neo4jGraphStore(GraphStore):
    """
    Stores each imported graph as :GraphVertex nodes and :GRAPH_EDGE
    relationships tagged with a ``graph`` property, plus one :GraphMeta node
    marking that the graph exists. Row batches run inside one explicit
    transaction that is closed by commit/rollback.
    """

    name = "neo4j"

    def __init__(self, uri: str, user: str, password: str, database: Optional[str] = None):
        if GraphDatabase is None:
            raise RuntimeError("neo4j driver is not installed; install neo4j to use store_backend=neo4j")
        self.driver = GraphDatabase.driver(uri, auth=(user, password))
        self.database = database
        self._session = None
        self._tx = None

    def close(self) -> None:
        if self._tx is not None:
            self._tx.close()
            self._tx = None
        if self._session is not None:
            self._session.close()
            self._session = None
        self.driver.close()

    @contextmanager
    def _errors(self, operation: str, graph: str) -> Iterator[None]:
        try:
            yield
        except Neo4jError as e:
            raise StorageError(f"{operation} failed: {e.message}", code=e.code, graph=graph) from e
        except DriverError as e:
            raise StorageError(f"{operation} failed: {e}", code=type(e).__name__, graph=graph) from e

    def _write(self, cypher: str, **params: Any) -> None:
        with self.driver.session(database=self.database) as session:
            session.execute_write(lambda tx: tx.run(cypher, **params).consume())

    def _transaction(self):
        if self._tx is None:
            if self._session is None:
                self._session = self.driver.session(database=self.database)
            self._tx = self._session.begin_transaction()
        return self._tx

    # ---------- lifecycle ----------

    def graph_exists(self, graph: str) -> bool:
        with self._errors("graph lookup", graph):
            with self.driver.session(database=self.database) as session:
                record = session.run(
                    "MATCH (g:GraphMeta {name: $name}) RETURN count(g) > 0 AS present", name=graph
                ).single()
        return bool(record and record["present"])

    def create_graph(self, graph: str) -> None:
        with self._errors("create graph", graph):
            self._write("MERGE (:GraphMeta {name: $name})", name=graph)

    def clear_graph(self, graph: str) -> None:
        with self._errors("clear graph", graph):
            self._write("MATCH (v:GraphVertex {graph: $name}) DETACH DELETE v", name=graph)

    def drop_graph(self, graph: str) -> None:
        with self._errors("drop graph", graph):
            self._write("MATCH (v:GraphVertex {graph: $name}) DETACH DELETE v", name=graph)
            self._write("MATCH (g:GraphMeta {name: $name}) DELETE g", name=graph)

    # ---------- rows ----------

    def insert_vertex_rows(self, graph: str, rows: List[VertexRow]) -> None:
        if not rows:
            return
        with self._errors("vertex batch insert", graph):
            self._transaction().run(VERTEX_CYPHER, graph=graph, rows=fold_vertex_rows(rows)).consume()

    def insert_edge_rows(self, graph: str, rows: List[EdgeRow]) -> None:
        if not rows:
            return
        with self._errors("edge batch insert", graph):
            self._transaction().run(EDGE_CYPHER, graph=graph, rows=fold_edge_rows(rows)).consume()

    def commit(self) -> None:
        if self._tx is None:
            return
        tx, self._tx = self._tx, None
        with self._errors("commit", ""):
            tx.commit()

    def rollback(self) -> None:
        if self._tx is None:
            return
        tx, self._tx = self._tx, None
        with self._errors("rollback", ""):
            tx.rollback()

    # ---------- post load ----------

    def build_topology_and_indexes(self, graph: str, full_topology: bool = True) -> None:
        stmts = [
            "CREATE INDEX graph_vertex_vid IF NOT EXISTS FOR (v:GraphVertex) ON (v.graph, v.vid)",
            "CREATE INDEX graph_vertex_label IF NOT EXISTS FOR (v:GraphVertex) ON (v.label)",
        ]
        if full_topology:
            # relationships are the topology; only their lookup index is missing
            stmts.append("CREATE INDEX graph_edge_eid IF NOT EXISTS FOR ()-[e:GRAPH_EDGE]-() ON (e.graph, e.eid)")
        with self._errors("index build", graph):
            for stmt in stmts:
                self._write(stmt)
