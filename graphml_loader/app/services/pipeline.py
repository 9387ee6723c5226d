from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from graphml_loader.app.core.errors import ConfigurationError, GraphExistsError, GraphNotFoundError
from graphml_loader.app.core.settings import Settings
from graphml_loader.app.models.run import ImportOptions, ImportSummary
from graphml_loader.app.services.loader import BatchLoader
from graphml_loader.app.services.parsing.events import GraphMLEventSource
from graphml_loader.app.services.parsing.formats import get_convention
from graphml_loader.app.services.parsing.parser import StreamingGraphParser
from graphml_loader.app.services.schema.casting import TypeCaster
from graphml_loader.app.services.schema.registry import KeyRegistry
from graphml_loader.app.services.stores.base import GraphStore
from graphml_loader.app.services.stores.factory import create_store

logger = logging.getLogger(__name__)


class ImportPipeline:
    """
    One GraphML file into one graph:

    1. graph lifecycle action (CREATE / APPEND / TRUNCATE / REPLACE)
    2. open the event stream
    3. parse and load, committing every ``batch_size`` records
    4. final commit
    5. optional topology / index build
    6. summary

    Uncommitted rows are rolled back on any failure; earlier commits stay.
    """

    def __init__(
        self,
        settings: Settings,
        store: Optional[GraphStore] = None,
        source_factory: Callable[..., GraphMLEventSource] = GraphMLEventSource,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.settings = settings
        self.store = store if store is not None else create_store(settings)
        self.source_factory = source_factory
        self.clock = clock

    def close(self) -> None:
        self.store.close()

    # ---------- lifecycle ----------

    def apply_action(self, graph: str, action: str) -> None:
        exists = self.store.graph_exists(graph)
        if action == "CREATE":
            if exists:
                raise GraphExistsError(
                    "graph already exists; use APPEND to add to it, TRUNCATE to clear it "
                    "or REPLACE to drop and re-create it",
                    graph=graph,
                )
            logger.info("Creating graph %s", graph)
            self.store.create_graph(graph)
        elif action == "APPEND":
            if not exists:
                raise GraphNotFoundError("cannot append to a graph that does not exist", graph=graph)
            logger.info("Appending to graph %s", graph)
        elif action == "TRUNCATE":
            if exists:
                logger.info("Clearing graph %s", graph)
                self.store.clear_graph(graph)
                logger.info("Graph cleared")
            else:
                logger.info("Graph %s does not exist, creating it", graph)
                self.store.create_graph(graph)
        elif action == "REPLACE":
            logger.info("Dropping graph %s", graph)
            self.store.drop_graph(graph)
            logger.info("Creating graph %s", graph)
            self.store.create_graph(graph)
        else:
            raise ConfigurationError("unknown action", action=action)

    # ---------- run ----------

    def run(self, options: ImportOptions) -> ImportSummary:
        graph = options.storage_graph_name
        convention = get_convention(options.source_format)
        if not options.filename.is_file():
            raise ConfigurationError("input file not found", filename=str(options.filename))

        self.apply_action(graph, options.action)

        registry = KeyRegistry()
        loader = BatchLoader(
            self.store,
            graph,
            registry,
            batch_size=options.batch_size,
            uppercase=options.uppercase,
            clock=self.clock,
        )
        parser = StreamingGraphParser(
            registry,
            TypeCaster(strict_booleans=options.strict_booleans),
            convention,
            loader,
            skip_items=options.skip_items,
            num_items=options.num_items,
        )

        logger.info("Processing file %s", options.filename)
        try:
            with self.source_factory(options.filename) as source:
                stats = parser.run(source)
            loader.final_commit()
        except Exception:
            logger.error(
                "Import of %s aborted after %d committed batches; re-run with skip_items to resume",
                graph, loader.counters.commits,
            )
            self.store.rollback()
            raise

        load_done = self.clock()
        load_seconds = load_done - loader.started
        logger.info("Graph %s imported in %d sec", graph, load_seconds)

        finish_seconds = 0.0
        if options.post_load:
            if options.build_topology:
                logger.info("Creating topology and indexes ...")
            else:
                logger.info("Creating indexes ...")
            self.store.build_topology_and_indexes(graph, full_topology=options.build_topology)
            finish_seconds = self.clock() - load_done
            logger.info("...completed in %d sec", finish_seconds)

        summary = ImportSummary(
            graph_name=graph,
            vertices=loader.counters.vertices,
            edges=loader.counters.edges,
            skipped=stats.skipped,
            commits=loader.counters.commits,
            load_seconds=load_seconds,
            finish_seconds=finish_seconds,
            total_seconds=load_seconds + finish_seconds,
        )
        logger.info("Graph %s processed in %d sec", graph, summary.total_seconds)
        logger.info("- %d vertices", summary.vertices)
        logger.info("- %d edges", summary.edges)
        return summary


def import_graphml(options: ImportOptions, settings: Optional[Settings] = None) -> ImportSummary:
    pipeline = ImportPipeline(settings or Settings())
    try:
        return pipeline.run(options)
    finally:
        pipeline.close()
