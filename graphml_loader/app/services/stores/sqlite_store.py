from __future__ import annotations
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Union

from graphml_loader.app.core.errors import StorageError
from graphml_loader.app.models.graph import EdgeRow, VertexRow
from graphml_loader.app.services.stores.base import GraphStore

logger = logging.getLogger(__name__)


def vertex_table(graph: str) -> str:
    return f'"{graph}VT$"'


def edge_table(graph: str) -> str:
    return f'"{graph}GE$"'


def topology_table(graph: str) -> str:
    return f'"{graph}GT$"'


class SqliteGraphStore(GraphStore):
    """
    Relational property-graph layout in SQLite.

    <G>VT$ holds one row per vertex property (vid, vl, k, t, v, vn), <G>GE$ one
    row per edge property (eid, svid, dvid, el, k, t, v, vn). Property-less
    elements are stored as a single row with k/t/v/vn NULL. <G>GT$ is the
    edge topology, materialized after the load.
    """

    name = "sqlite"

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = str(db_path)
        try:
            self.conn = sqlite3.connect(self.db_path)
            self.conn.execute("PRAGMA journal_mode=WAL")
            self.conn.execute("PRAGMA synchronous=NORMAL")
        except sqlite3.Error as e:
            raise StorageError(f"cannot open sqlite database: {e}", code=_code(e), path=self.db_path) from e

    def close(self) -> None:
        if self.conn is not None:
            self.conn.close()
            self.conn = None

    @contextmanager
    def _errors(self, operation: str, graph: str) -> Iterator[None]:
        try:
            yield
        except sqlite3.Error as e:
            raise StorageError(f"{operation} failed: {e}", code=_code(e), graph=graph) from e

    # ---------- lifecycle ----------

    def graph_exists(self, graph: str) -> bool:
        with self._errors("graph lookup", graph):
            row = self.conn.execute(
                "SELECT 1 FROM sqlite_master WHERE type='table' AND name=?", (f"{graph}VT$",)
            ).fetchone()
        return row is not None

    def create_graph(self, graph: str) -> None:
        with self._errors("create graph", graph):
            self.conn.execute(f"""
                CREATE TABLE {vertex_table(graph)} (
                    vid INTEGER NOT NULL,
                    vl  TEXT,
                    k   TEXT,
                    t   INTEGER,
                    v   TEXT,
                    vn  NUMERIC
                )
            """)
            self.conn.execute(f"""
                CREATE TABLE {edge_table(graph)} (
                    eid  INTEGER NOT NULL,
                    svid INTEGER NOT NULL,
                    dvid INTEGER NOT NULL,
                    el   TEXT,
                    k    TEXT,
                    t    INTEGER,
                    v    TEXT,
                    vn   NUMERIC
                )
            """)
            # one row per (element, key); the NULL key of a placeholder row counts as a key
            self.conn.execute(
                f'CREATE UNIQUE INDEX "{graph}VT$_UK" ON {vertex_table(graph)} (vid, ifnull(k, \'\'))'
            )
            self.conn.execute(
                f'CREATE UNIQUE INDEX "{graph}GE$_UK" ON {edge_table(graph)} (eid, ifnull(k, \'\'))'
            )
            self.conn.commit()

    def clear_graph(self, graph: str) -> None:
        with self._errors("clear graph", graph):
            self.conn.execute(f"DELETE FROM {vertex_table(graph)}")
            self.conn.execute(f"DELETE FROM {edge_table(graph)}")
            self.conn.execute(f"DROP TABLE IF EXISTS {topology_table(graph)}")
            self.conn.commit()

    def drop_graph(self, graph: str) -> None:
        with self._errors("drop graph", graph):
            for table in (vertex_table(graph), edge_table(graph), topology_table(graph)):
                self.conn.execute(f"DROP TABLE IF EXISTS {table}")
            self.conn.commit()

    # ---------- rows ----------

    def insert_vertex_rows(self, graph: str, rows: List[VertexRow]) -> None:
        if not rows:
            return
        with self._errors("vertex batch insert", graph):
            self.conn.executemany(
                f"INSERT INTO {vertex_table(graph)} (vid, vl, k, t, v, vn) VALUES (?,?,?,?,?,?)",
                [(r.vid, r.label, r.key, r.type_code, r.value, r.number) for r in rows],
            )

    def insert_edge_rows(self, graph: str, rows: List[EdgeRow]) -> None:
        if not rows:
            return
        with self._errors("edge batch insert", graph):
            self.conn.executemany(
                f"INSERT INTO {edge_table(graph)} (eid, svid, dvid, el, k, t, v, vn) VALUES (?,?,?,?,?,?,?,?)",
                [(r.eid, r.svid, r.dvid, r.label, r.key, r.type_code, r.value, r.number) for r in rows],
            )

    def commit(self) -> None:
        with self._errors("commit", ""):
            self.conn.commit()

    def rollback(self) -> None:
        if self.conn is None:
            return
        with self._errors("rollback", ""):
            self.conn.rollback()

    # ---------- post load ----------

    def build_topology_and_indexes(self, graph: str, full_topology: bool = True) -> None:
        vt, ge, gt = vertex_table(graph), edge_table(graph), topology_table(graph)
        with self._errors("index build", graph):
            self.conn.execute(f'CREATE INDEX IF NOT EXISTS "{graph}VT$_VID" ON {vt} (vid)')
            self.conn.execute(f'CREATE INDEX IF NOT EXISTS "{graph}VT$_K" ON {vt} (k)')
            self.conn.execute(f'CREATE INDEX IF NOT EXISTS "{graph}GE$_EID" ON {ge} (eid)')
            self.conn.execute(f'CREATE INDEX IF NOT EXISTS "{graph}GE$_SVID" ON {ge} (svid)')
            self.conn.execute(f'CREATE INDEX IF NOT EXISTS "{graph}GE$_DVID" ON {ge} (dvid)')
            if full_topology:
                self.conn.execute(f"DROP TABLE IF EXISTS {gt}")
                self.conn.execute(f"CREATE TABLE {gt} AS SELECT DISTINCT eid, svid, dvid, el FROM {ge}")
                self.conn.execute(f'CREATE INDEX IF NOT EXISTS "{graph}GT$_SVID" ON {gt} (svid)')
                self.conn.execute(f'CREATE INDEX IF NOT EXISTS "{graph}GT$_DVID" ON {gt} (dvid)')
            self.conn.commit()


def _code(e: sqlite3.Error) -> object:
    # sqlite_errorname is available from Python 3.11
    return getattr(e, "sqlite_errorname", None) or type(e).__name__
