#!/usr/bin/env python3
"""
Example: Daisy v1 components to Configurator v2

This script shows how to drive the ui_migrator package from Python
to migrate a v1 React component tree.

Usage:
    # Dry run (stage and validate, write nothing)
    python run_migration.py --dry-run

    # Full migration
    python run_migration.py

    # With custom config
    python run_migration.py --config my_config.json

    # Preview a sample component without touching the file system
    python run_migration.py --demo
"""

import argparse
import json
import logging
from pathlib import Path

from ui_migrator.logging_setup import setup_logging
from ui_migrator.models.migration import MigrationConfig, ProcessingMode, RetryPolicy
from ui_migrator.orchestrator import MigrationOrchestrator, preview_component

logger = logging.getLogger(__name__)

HERE = Path(__file__).parent

SAMPLE_COMPONENT = """\
import React, { useEffect, useState } from 'react';
import { container } from 'tsyringe';
import type { DaisyTheme } from '@daisy/core';

interface OrderListProps {
  theme: DaisyTheme;
  customerId: string;
}

export const OrderList: React.FC<OrderListProps> = ({ theme, customerId }) => {
  const [orders, setOrders] = useState([]);
  const [error, setError] = useState('');

  useEffect(() => {
    const listOrders = container.resolve<ListOrders>('ListOrders');
    listOrders.execute(customerId).then(setOrders).catch(() => setError('Could not load orders'));
  }, [customerId]);

  const handleRefresh = () => {
    if (!customerId) {
      setError('Customer is required');
      return;
    }
    setError('');
  };

  return (
    <div className={theme.panel}>
      <button onClick={handleRefresh}>Refresh</button>
      {error && <span>{error}</span>}
      <ul>{orders.map((o) => <li key={o.id}>{o.number}</li>)}</ul>
    </div>
  );
};
"""


def create_config(dry_run: bool = True) -> MigrationConfig:
    """Create migration configuration programmatically."""
    return MigrationConfig(
        name="Daisy v1 to Configurator v2",
        source_root=str(HERE / "legacy" / "src"),
        output_root=str(HERE / "output"),
        mode=ProcessingMode.PARALLEL,
        concurrency=4,
        skip_cycles=True,
        dry_run=dry_run,
        retry=RetryPolicy(max_attempts=3, base_delay=0.5),
    )


def run_migration(config: MigrationConfig):
    """Run the migration."""
    logger.info("=" * 60)
    logger.info("STARTING MIGRATION")
    logger.info("=" * 60)
    logger.info(f"Name: {config.name}")
    logger.info(f"Dry Run: {config.dry_run}")
    logger.info(f"Source: {config.source_root}")

    orchestrator = MigrationOrchestrator(config)
    manifest = orchestrator.run_migration()

    logger.info("=" * 60)
    logger.info("MIGRATION COMPLETE")
    logger.info("=" * 60)
    logger.info(f"Status: {manifest.status.value}")
    logger.info(f"Succeeded: {len(manifest.successful)}")
    logger.info(f"Manual review: {len(manifest.manual_review)}")
    logger.info(f"Failed: {len(manifest.failed)}")
    logger.info(f"Skipped: {len(manifest.skipped)}")

    if manifest.duration_seconds:
        logger.info(f"Duration: {manifest.duration_seconds:.2f} seconds")

    for failure in manifest.failed[:10]:
        logger.warning(f"  - {failure.component_id}: {failure.error}")

    return manifest


def demo_with_sample_component():
    """Preview one v1 component in memory; no source tree needed."""
    logger.info("Running demo with a sample component...")

    preview = preview_component(SAMPLE_COMPONENT, "OrderList.tsx")

    logger.info(f"Strategy: {preview['strategy']}")
    logger.info(f"Manual review: {preview['requires_manual_review']}")
    for artifact in preview["artifacts"]:
        logger.info(f"\n--- {artifact['relative_path']} ---\n{artifact['content']}")

    validation = preview["validation"]
    logger.info(f"Valid: {validation['valid']}  Score: {validation['score']}")
    for issue in validation["errors"] + validation["warnings"]:
        logger.info(f"  [{issue['severity']}] {issue['message']}")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Daisy v1 to Configurator v2 migration")
    parser.add_argument("--dry-run", action="store_true", help="Stage and validate without writing")
    parser.add_argument("--demo", action="store_true", help="Preview a sample component")
    parser.add_argument("--config", help="Path to JSON config file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    args = parser.parse_args()
    setup_logging(verbose=args.verbose, log_file="migration.log")

    if args.demo:
        demo_with_sample_component()
        return

    if args.config:
        with open(args.config) as f:
            config = MigrationConfig.from_dict(json.load(f))
        if args.dry_run:
            config.dry_run = True
    else:
        config = create_config(dry_run=args.dry_run)

    run_migration(config)


if __name__ == "__main__":
    main()
