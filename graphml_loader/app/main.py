from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from graphml_loader.app.core.errors import GraphImportError
from graphml_loader.app.core.settings import Settings
from graphml_loader.app.models.run import ImportOptions
from graphml_loader.app.services.pipeline import ImportPipeline

logger = logging.getLogger(__name__)


def yes_no(value: str) -> bool:
    v = value.strip().upper()
    if v in ("YES", "Y", "TRUE"):
        return True
    if v in ("NO", "N", "FALSE"):
        return False
    raise argparse.ArgumentTypeError(f"expected YES or NO, got {value!r}")


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Load a GraphML file into a property-graph store")
    parser.add_argument("-f", "--filename", required=True, help="GraphML file to import")
    parser.add_argument("-g", "--graphname", required=True, help="Name of the graph to create or load into")
    parser.add_argument("-a", "--action", default=settings.default_action, type=str.upper,
                        choices=["CREATE", "APPEND", "REPLACE", "TRUNCATE"])
    parser.add_argument("-t", "--format", default=settings.default_format, type=str.upper,
                        choices=["NEO4J", "TINKERPOP"])
    parser.add_argument("-b", "--batchsize", type=int, default=settings.default_batch_size,
                        help="commit interval (0 = only commit at the end)")
    parser.add_argument("-s", "--skipItems", type=int, default=0,
                        help="number of items to skip (0 = nothing to skip)")
    parser.add_argument("-n", "--numItems", type=int, default=0,
                        help="number of items to read (0 = until the end)")
    parser.add_argument("-o", "--topology", type=yes_no, default=True,
                        help="YES: build topology and indexes / NO: indexes only")
    parser.add_argument("-U", "--uppercase", type=yes_no, default=True,
                        help="YES: make all property names and labels uppercase")
    parser.add_argument("--strict-booleans", action="store_true",
                        help="reject boolean values other than true/false")
    parser.add_argument("--no-post-load", action="store_true",
                        help="skip the topology/index build")
    parser.add_argument("--store", choices=["sqlite", "json", "neo4j"], default=settings.store_backend)
    parser.add_argument("--sqlite-path", default=None)
    parser.add_argument("--out-dir", default=None)
    return parser


def cli(argv: Optional[List[str]] = None) -> int:
    settings = Settings()
    args = build_parser(settings).parse_args(argv)

    logging.basicConfig(level=settings.log_level.upper(), format="%(levelname)s: %(message)s")

    settings.store_backend = args.store
    if args.sqlite_path:
        settings.sqlite_path = Path(args.sqlite_path)
    if args.out_dir:
        settings.out_dir = Path(args.out_dir)

    try:
        options = ImportOptions.build(
            filename=Path(args.filename),
            graph_name=args.graphname,
            action=args.action,
            source_format=args.format,
            batch_size=args.batchsize,
            skip_items=args.skipItems,
            num_items=args.numItems,
            build_topology=args.topology,
            uppercase=args.uppercase,
            strict_booleans=args.strict_booleans,
            post_load=not args.no_post_load,
        )
        pipeline = ImportPipeline(settings)
        try:
            summary = pipeline.run(options)
        finally:
            pipeline.close()
    except GraphImportError as e:
        logger.error("%s: %s", type(e).__name__, e)
        return 1

    print(json.dumps(summary.model_dump(), ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(cli())
