"""
WooCommerce Graph Source Runner.

Fetches every configured field from every configured site and loads the
reconciled graph into the configured store.

Technologies:
- Source: httpx (WooCommerce REST, paginated)
- Graph: Pydantic nodes with deterministic ids and content digests
- Store: in-memory, or SurrealDB
"""

import sys
import asyncio
import argparse
from pathlib import Path
from typing import Optional

from loguru import logger

from src import Orchestrator
from src.errors import ConfigurationError
from src.graph import GraphStore, MemoryGraphStore
from src.utils import generate_ingestion_report
from src.utils.config import PipelineConfig, load_config, validate_config
from src.utils.logging import setup_logging


def build_store(config: PipelineConfig) -> GraphStore:
    """Storage runtime for the configured backend."""
    if config.store.backend == "surreal":
        from src.graph.loader import GraphLoader
        return GraphLoader(config.surreal, config.fields)
    return MemoryGraphStore()


async def ingest(config: PipelineConfig, store: GraphStore) -> dict:
    """Connect the store if needed, run every site, close the store."""
    connect = getattr(store, "connect", None)
    if connect is not None:
        await connect()
    try:
        return await Orchestrator(config, store).run()
    finally:
        await store.close()


def run_pipeline(
    config_path: Optional[Path] = None,
    store_backend: Optional[str] = None,
    verbose: Optional[bool] = None,
    report_path: Optional[Path] = None,
) -> dict:
    """
    Run the ingestion.

    Args:
        config_path: YAML config file, or None for config/pipeline_config.yaml
        store_backend: Override for store.backend (memory, surreal)
        verbose: Override for the verbose flag
        report_path: Override for the report location

    Returns:
        Dictionary with run results
    """
    config = load_config(config_path)
    if store_backend:
        config.store.backend = store_backend
    if verbose is not None:
        config.verbose = verbose

    setup_logging(
        config.logging.log_dir,
        level=config.logging.level,
        console=config.logging.console,
        file=config.logging.file,
    )
    log = logger.bind(component="Pipeline")

    # Fail before touching the network or the store
    validate_config(config)

    log.info("=" * 70)
    log.info("WOOCOMMERCE GRAPH SOURCE")
    log.info("=" * 70)
    log.info(f"Sites: {', '.join(s.site_name or s.api for s in config.sites)}")
    log.info(f"Fields: {', '.join(config.fields)}")
    log.info(f"Store: {config.store.backend}")

    results = {}
    site_results = asyncio.run(ingest(config, build_store(config)))
    results["sites"] = site_results
    results["status"] = "success"

    report = report_path or config.report_path
    if report:
        results["report"] = generate_ingestion_report(site_results, report)

    log.info("=" * 70)
    log.info("INGESTION COMPLETE")
    log.info("=" * 70)
    return results


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Ingest WooCommerce stores into a graph")
    parser.add_argument(
        "--config", "-c",
        type=Path,
        help="Path to pipeline_config.yaml",
    )
    parser.add_argument(
        "--store",
        choices=["memory", "surreal"],
        help="Storage backend",
    )
    parser.add_argument(
        "--report",
        type=Path,
        help="Where to write the markdown ingestion report",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        default=None,
        help="Log progress lines at INFO level",
    )

    args = parser.parse_args()

    try:
        results = run_pipeline(
            config_path=args.config,
            store_backend=args.store,
            verbose=args.verbose,
            report_path=args.report,
        )
    except ConfigurationError as e:
        print(f"\n✗ Configuration error: {e}")
        sys.exit(1)

    print("\n✓ Ingestion completed")
    for site, result in results["sites"].items():
        print(
            f"  {site or '(unnamed)'}: {result.total_fetched} fetched → "
            f"{result.nodes_emitted} nodes, {result.media_resolved} media"
        )
    if results.get("report"):
        print(f"  Report → {results['report']}")


if __name__ == "__main__":
    main()
