"""Command line interface for the component migrator."""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .errors import ExtractionError, MigrationError
from .extractors.discovery import discover_sources
from .extractors.tsx_extractor import TSXExtractor
from .logging_setup import setup_logging
from .models.migration import DEFAULT_EXCLUDE, DEFAULT_INCLUDE, Manifest, MigrationConfig, ProcessingMode
from .orchestrator import MigrationOrchestrator, load_manifest, preview_component
from .services.analyzer import BusinessLogicAnalyzer
from .services.dependency_resolver import DependencyResolver
from .services.transformer import ComponentTransformer

logger = logging.getLogger(__name__)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="UI Migrator - Migrate v1 React components to v2 Configurator components"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--log-file", help="Also write logs to this file")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Run migration
    run_parser = subparsers.add_parser("run", help="Run a migration")
    run_parser.add_argument("--config", required=True, help="Path to migration config file")
    run_parser.add_argument("--dry-run", action="store_true", help="Stage and validate without writing")
    run_parser.add_argument("--mode", choices=[m.value for m in ProcessingMode], help="Override processing mode")
    run_parser.add_argument("--skip-cycles", action="store_true", help="Skip cyclic components with a warning")

    # Analyze one file
    analyze_parser = subparsers.add_parser("analyze", help="Analyze a single component")
    analyze_parser.add_argument("file", help="Path to the component source file")
    analyze_parser.add_argument("--json", action="store_true", help="Print the full model as JSON")

    # Plan a batch
    plan_parser = subparsers.add_parser("plan", help="Show the migration order of a source tree")
    plan_parser.add_argument("--source-root", required=True, help="Root directory of the v1 sources")
    plan_parser.add_argument("--include", action="append", help="Include glob (repeatable)")
    plan_parser.add_argument("--exclude", action="append", help="Exclude glob (repeatable)")

    # Preview one component
    preview_parser = subparsers.add_parser("preview", help="Print the generated output for one component")
    preview_parser.add_argument("file", help="Path to the component source file")

    # Report on a previous run
    report_parser = subparsers.add_parser("report", help="Summarize a migration manifest")
    report_parser.add_argument("manifest", help="Path to migration-manifest.json")

    args = parser.parse_args(argv)

    setup_logging(verbose=args.verbose, log_file=args.log_file)

    if args.command == "run":
        return run_migration(args)
    elif args.command == "analyze":
        return run_analyze(args)
    elif args.command == "plan":
        return run_plan(args)
    elif args.command == "preview":
        return run_preview(args)
    elif args.command == "report":
        return run_report(args)
    else:
        parser.print_help()
        return 2


def run_migration(args) -> int:
    """Run a migration from config file."""
    with open(args.config) as f:
        config_data = json.load(f)

    config = MigrationConfig.from_dict(config_data)
    if args.dry_run:
        config.dry_run = True
    if args.mode:
        config.mode = ProcessingMode(args.mode)
    if args.skip_cycles:
        config.skip_cycles = True

    orchestrator = MigrationOrchestrator(config)
    manifest = orchestrator.run_migration()

    print("\n" + "=" * 60)
    print("MIGRATION COMPLETE")
    print("=" * 60)
    print_summary(manifest)
    return 0 if not manifest.failed and manifest.status.value == "completed" else 1


def run_analyze(args) -> int:
    """Extract and analyze one component."""
    path = Path(args.file)
    analyzer = BusinessLogicAnalyzer()
    try:
        model = analyzer.enrich(TSXExtractor().extract_file(path))
    except MigrationError as e:
        print(f"Error: {e.message}")
        return 1

    strategy = ComponentTransformer().select_strategy(model.complexity_tier)
    if args.json:
        data = model.to_dict()
        data["strategy"] = strategy.value
        print(json.dumps(data, indent=2))
        return 0

    logic = model.business_logic
    print(f"\n=== {model.name} ({model.kind.value}) ===")
    print(f"Complexity: {logic.complexity_score} ({model.complexity_tier.value})")
    print(f"Strategy: {strategy.value}")
    print(f"Inputs: {', '.join(i.name for i in model.inputs) or '-'}")
    print("Patterns:")
    for category, count in logic.counts().items():
        print(f"  {category.value}: {count}")
    return 0


def run_plan(args) -> int:
    """Show the dependency order of a source tree."""
    root = Path(args.source_root)
    paths = discover_sources(root, args.include or DEFAULT_INCLUDE, args.exclude or DEFAULT_EXCLUDE)
    result = TSXExtractor().extract_all(paths, root)
    for error in result.errors:
        if error.get("reason") != ExtractionError.NO_DECLARATION:
            print(f"Extraction failed: {error['message']}")

    models = [m for m in result.models if not m.failed]
    resolution = DependencyResolver().resolve(models)

    if not resolution.success:
        print("\n=== Dependency cycles ===")
        for error in resolution.errors:
            print(f"  {error}")
        return 1

    names = {m.id: m.name for m in models}
    print(f"\n=== Migration order ({len(resolution.ordered)} components) ===")
    for level, generation in enumerate(resolution.generations(), 1):
        print(f"Generation {level}:")
        for component_id in generation:
            print(f"  {names[component_id]}  ({component_id})")
    return 0


def run_preview(args) -> int:
    """Print the artifacts one component would produce."""
    path = Path(args.file)
    try:
        preview = preview_component(path.read_text(encoding="utf-8"), str(path))
    except FileNotFoundError:
        print(f"File not found: {path}")
        return 1
    except MigrationError as e:
        print(f"Error: {e.message}")
        return 1

    for artifact in preview["artifacts"]:
        print(f"\n--- {artifact['relative_path']} ---")
        print(artifact["content"])
    validation = preview["validation"]
    print(f"Strategy: {preview['strategy']}  Valid: {validation['valid']}  Score: {validation['score']}")
    return 0 if validation["valid"] else 1


def run_report(args) -> int:
    """Summarize a manifest written by a previous run."""
    try:
        manifest = load_manifest(args.manifest)
    except FileNotFoundError:
        print(f"Manifest not found: {args.manifest}")
        return 1
    print_summary(manifest)
    if manifest.failed:
        print("\nFailures:")
        for failure in manifest.failed:
            print(f"  {failure.component_id}: [{failure.error_type}] {failure.error}")
    return 0


def print_summary(manifest: Manifest) -> None:
    print(f"Run: {manifest.run_id}")
    print(f"Status: {manifest.status.value}")
    print(f"Succeeded: {len(manifest.successful)}")
    print(f"Manual review: {len(manifest.manual_review)}")
    print(f"Failed: {len(manifest.failed)}")
    print(f"Skipped: {len(manifest.skipped)}")
    if manifest.cycles:
        print(f"Cycles: {len(manifest.cycles)}")
    for warning in manifest.warnings:
        print(f"Warning: {warning}")
    if manifest.duration_seconds:
        print(f"Duration: {manifest.duration_seconds:.2f} seconds")


if __name__ == "__main__":
    sys.exit(main())
