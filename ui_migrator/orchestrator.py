"""Migration orchestrator - coordinates the complete component migration."""

import asyncio
import json
import logging
import time
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .errors import (
    ExtractionError,
    MigrationCancelled,
    MigrationError,
    OperationTimeout,
    ResolutionError,
    TransformationError,
)
from .extractors.base import BaseExtractor
from .extractors.discovery import discover_sources
from .extractors.tsx_extractor import TSXExtractor
from .loaders.atomic_writer import AtomicFileWriter
from .loaders.base import BaseLoader
from .models.component import ComponentModel
from .models.migration import (
    FailureEntry,
    Manifest,
    MigrationConfig,
    MigrationStatus,
    OperationKind,
    ProcessingMode,
    utcnow,
)
from .models.record import ArtifactKind, GeneratedArtifact, MigrationResult
from .services.analyzer import BusinessLogicAnalyzer
from .services.dependency_resolver import DependencyResolver, ResolutionResult
from .services.generator import CodeGenerator
from .services.retry import CancellationToken, RetryController
from .services.run_state import RunStateOwner
from .services.transformer import ComponentTransformer
from .services.validator import MigrationValidator

logger = logging.getLogger(__name__)

MANIFEST_FILE = "migration-manifest.json"


def _remaining(deadline: Optional[float]) -> Optional[float]:
    if deadline is None:
        return None
    return max(0.0, deadline - time.monotonic())


class MigrationOrchestrator:
    """
    Orchestrates the complete migration process.

    Handles:
    - Discovery, extraction and analysis of the source tree
    - Dependency ordering and cycle handling
    - Per-component transform, generate, validate and atomic write
    - Serial or bounded-parallel scheduling with retries and timeouts
    - Cancellation and the run manifest
    """

    def __init__(
        self,
        config: MigrationConfig,
        extractor: Optional[BaseExtractor] = None,
        analyzer: Optional[BusinessLogicAnalyzer] = None,
        resolver: Optional[DependencyResolver] = None,
        transformer: Optional[ComponentTransformer] = None,
        generator: Optional[CodeGenerator] = None,
        validator: Optional[MigrationValidator] = None,
        writer: Optional[BaseLoader] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            config: Migration configuration
            extractor: Source model extractor (defaults to TSXExtractor)
            analyzer: Business logic analyzer
            resolver: Dependency resolver
            transformer: Component transformer
            generator: Code generator
            validator: Migration validator
            writer: Artifact writer (defaults to AtomicFileWriter)
        """
        self.config = config
        self.extractor = extractor or TSXExtractor()
        self.analyzer = analyzer or BusinessLogicAnalyzer(policy=config.complexity)
        self.resolver = resolver or DependencyResolver()
        self.transformer = transformer or ComponentTransformer(policy=config.complexity)
        self.generator = generator or CodeGenerator()
        self.validator = validator or MigrationValidator(settings=config.validation, analyzer=self.analyzer)
        self.writer = writer or AtomicFileWriter(dry_run=config.dry_run)

        self.token = CancellationToken()
        self.state = RunStateOwner(Manifest(name=config.name, config_snapshot=config.to_dict()))

        # Runtime state
        self.models: Dict[str, ComponentModel] = {}
        self.results: Dict[str, MigrationResult] = {}
        self.resolution: Optional[ResolutionResult] = None

    @property
    def manifest(self) -> Manifest:
        return self.state.get()

    def cancel(self, reason: str = "cancelled by user") -> None:
        """Stop the remaining queue; components already written stay committed."""
        logger.warning(f"Cancelling migration run: {reason}")
        self.token.cancel(reason)

    def run_migration(self) -> Manifest:
        """
        Run the complete migration.

        Returns:
            Manifest with per-component outcomes
        """
        return asyncio.run(self.run_migration_async())

    async def run_migration_async(self) -> Manifest:
        """Async entry point; see run_migration()."""
        self.state.update(self._start)
        try:
            logger.info("=== PHASE 1: DISCOVERY ===")
            self._set_status(MigrationStatus.DISCOVERING)
            paths = await asyncio.to_thread(
                discover_sources, Path(self.config.source_root), self.config.include, self.config.exclude
            )

            logger.info("=== PHASE 2: EXTRACTION ===")
            self._set_status(MigrationStatus.EXTRACTING)
            await self._run_extraction(paths)

            logger.info("=== PHASE 3: DEPENDENCY RESOLUTION ===")
            self._set_status(MigrationStatus.RESOLVING)
            selected = self._select_components()
            self.resolution = self._resolve(selected)

            logger.info("=== PHASE 4: MIGRATION ===")
            self._set_status(MigrationStatus.MIGRATING)
            if self.config.mode == ProcessingMode.PARALLEL:
                await self._run_parallel(self.resolution)
            else:
                await self._run_serial(self.resolution.ordered)

            final = MigrationStatus.CANCELLED if self.token.cancelled else MigrationStatus.COMPLETED
            self._set_status(final)
            logger.info(f"=== MIGRATION {final.value.upper()} ===")

        except MigrationCancelled:
            self._set_status(MigrationStatus.CANCELLED)
            logger.warning("Migration cancelled")
        except Exception as e:
            logger.error(f"Migration failed: {e}")
            self.state.update(lambda m: self._fail_run(m, e))
            # A cycle is reported through the manifest; other errors surface when asked to stop.
            if not self.config.continue_on_error and not isinstance(e, ResolutionError):
                raise
        finally:
            self.state.update(self._finish)
            await self._save_manifest()

        return self.state.get()

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    async def _run_extraction(self, paths: List[Path]) -> None:
        root = Path(self.config.source_root)
        for path in paths:
            component_id = self.extractor.component_id(path, root)
            try:
                self.token.raise_if_cancelled(component_id)
                model = await self._extract(path, root, component_id)
                model = self.analyzer.enrich(model)
            except MigrationCancelled:
                raise
            except ExtractionError as e:
                if e.reason == ExtractionError.NO_DECLARATION:
                    # Barrels and type-only modules have nothing to migrate.
                    logger.info(f"Skipping {component_id}: {e.message}")
                    self.state.update(lambda m: m.skipped.append(component_id))
                    continue
                self._record_failure(component_id, e)
                if not self.config.continue_on_error:
                    raise
                continue
            except Exception as e:
                self._record_failure(component_id, e)
                if not self.config.continue_on_error:
                    raise
                continue
            self.models[model.id] = model

        logger.info(f"Extracted and analyzed {len(self.models)} of {len(paths)} files")

    async def _extract(self, path: Path, root: Path, component_id: str) -> ComponentModel:
        text = await self._with_retry(
            OperationKind.FILE_READ,
            component_id,
            lambda: asyncio.to_thread(self.extractor.read_source, path, root),
        )
        attempts = 0

        async def parse() -> ComponentModel:
            nonlocal attempts, text
            attempts += 1
            if attempts > 1:
                # The file may have been mid-write; read it again.
                text = await asyncio.to_thread(self.extractor.read_source, path, root)
            return await asyncio.to_thread(self.extractor.extract, text, str(path), component_id)

        return await self._with_retry(OperationKind.PARSE, component_id, parse)

    def _select_components(self) -> List[ComponentModel]:
        selected = []
        for model in self.models.values():
            if self.config.kinds and model.kind not in self.config.kinds:
                self.state.update(lambda m, cid=model.id: m.skipped.append(cid))
                continue
            if self.config.tiers and model.complexity_tier not in self.config.tiers:
                self.state.update(lambda m, cid=model.id: m.skipped.append(cid))
                continue
            selected.append(model)
        return selected

    def _resolve(self, models: List[ComponentModel]) -> ResolutionResult:
        if not self.config.skip_cycles:
            result = self.resolver.resolve(models)
            if not result.success:
                self.state.update(lambda m: m.cycles.extend(result.cycles))
                raise ResolutionError("; ".join(result.errors), cycles=result.cycles)
        else:
            result = self.resolver.resolve_excluding_cycles(models)
            if result.cycles:
                cyclic = set(result.cyclic_components)
                blocked = sorted({m.id for m in models} - set(result.ordered) - cyclic)

                def record(manifest: Manifest) -> None:
                    manifest.cycles.extend(result.cycles)
                    manifest.warnings.extend(result.errors)
                    for component_id in sorted(cyclic):
                        manifest.failed.append(FailureEntry(
                            component_id=component_id,
                            error="Component is part of a dependency cycle",
                            error_type=ResolutionError.__name__,
                        ))
                    for component_id in blocked:
                        manifest.skipped.append(component_id)
                        manifest.warnings.append(f"Skipped {component_id}: depends on a cyclic component")

                self.state.update(record)
                logger.warning(
                    f"Skipping {len(cyclic)} cyclic and {len(blocked)} dependent component(s)"
                )

        self.state.update(lambda m: m.order.extend(result.ordered))
        return result

    async def _run_serial(self, order: List[str]) -> None:
        for index, component_id in enumerate(order):
            if self.token.cancelled:
                self._skip_remaining(order[index:])
                return
            await self._process_component(self.models[component_id])

    async def _run_parallel(self, resolution: ResolutionResult) -> None:
        semaphore = asyncio.Semaphore(self.config.concurrency)

        async def worker(component_id: str) -> None:
            async with semaphore:
                if self.token.cancelled:
                    self._skip_remaining([component_id])
                    return
                await self._process_component(self.models[component_id])

        # Generations run one after another, so prerequisites are written first.
        for generation in resolution.generations():
            if self.token.cancelled:
                self._skip_remaining(generation)
                continue
            outcomes = await asyncio.gather(*(worker(cid) for cid in generation), return_exceptions=True)
            for outcome in outcomes:
                if isinstance(outcome, Exception):
                    raise outcome

    # ------------------------------------------------------------------
    # Per component
    # ------------------------------------------------------------------

    async def _process_component(self, model: ComponentModel) -> Optional[MigrationResult]:
        started = utcnow()
        clock = time.monotonic()
        deadline = clock + self.config.component_timeout if self.config.component_timeout else None
        try:
            result = await self._migrate(model, started, deadline)
        except MigrationCancelled:
            self._skip_remaining([model.id])
            return None
        except asyncio.TimeoutError:
            error = OperationTimeout(f"Component exceeded {self.config.component_timeout}s", model.id)
            result = self._failed_result(model, started, error)
            self._record_failure(model.id, error, result)
            if not self.config.continue_on_error:
                self.cancel(f"{model.id} failed")
                raise error
        except Exception as e:
            result = self._failed_result(model, started, e)
            self._record_failure(model.id, e, result)
            if not self.config.continue_on_error:
                self.cancel(f"{model.id} failed")
                raise
        else:
            self._record_result(result)

        logger.info(
            f"component={model.id} operation=migrate status={'ok' if result.success else 'failed'} "
            f"duration={time.monotonic() - clock:.3f}s"
        )
        return result

    async def _migrate(self, model: ComponentModel, started, deadline: Optional[float]) -> MigrationResult:
        outcome, artifacts, validation = await asyncio.wait_for(
            asyncio.to_thread(self._prepare, model), _remaining(deadline)
        )
        transformed = outcome.transformed

        attempts = 0
        if validation.valid:
            attempts = await self._write(model.id, artifacts, deadline)
        else:
            logger.warning(f"Not writing {model.id}: validation failed with score {validation.score}")

        return MigrationResult(
            component_id=model.id,
            component_name=model.name,
            success=validation.valid,
            strategy=outcome.strategy,
            records=outcome.records,
            artifacts=tuple(artifacts),
            validation=validation,
            started_at=started,
            completed_at=utcnow(),
            attempts=max(1, attempts),
            errors=tuple(e.message for e in validation.errors),
            requires_manual_review=transformed.requires_manual_review,
        )

    def _prepare(self, model: ComponentModel):
        """Transform, generate and validate one component; runs off the event loop."""
        outcome = self.transformer.transform(model)
        artifacts = self.generator.generate(outcome.transformed)
        validation = self.validator.validate(model, artifacts, outcome.transformed.requires_manual_review)
        return outcome, artifacts, validation

    async def _write(
        self,
        component_id: str,
        artifacts: List[GeneratedArtifact],
        deadline: Optional[float] = None,
    ) -> int:
        controller = self._controller(OperationKind.FILE_WRITE, component_id)

        def attempt() -> Awaitable[Any]:
            # The writer checks the deadline itself; a started commit is never abandoned.
            limit = deadline
            if self.config.operation_timeout:
                own = time.monotonic() + self.config.operation_timeout
                limit = own if limit is None else min(limit, own)
            return asyncio.to_thread(self.writer.write_all, artifacts, self.config.output_root, limit)

        await controller.run(attempt)
        return controller.attempts

    async def _with_retry(
        self,
        operation: OperationKind,
        component_id: str,
        call_factory: Callable[[], Awaitable[Any]],
    ) -> Any:
        controller = self._controller(operation, component_id)
        return await controller.run(call_factory, timeout=self.config.operation_timeout)

    def _controller(self, operation: OperationKind, component_id: str) -> RetryController:
        return RetryController(self.config.retry, operation, token=self.token, component_id=component_id)

    def _failed_result(self, model: ComponentModel, started, error: Exception) -> MigrationResult:
        return MigrationResult(
            component_id=model.id,
            component_name=model.name,
            success=False,
            started_at=started,
            completed_at=utcnow(),
            errors=(str(error),),
            requires_manual_review=isinstance(error, TransformationError),
        )

    # ------------------------------------------------------------------
    # Manifest
    # ------------------------------------------------------------------

    def _start(self, manifest: Manifest) -> None:
        manifest.started_at = utcnow()
        manifest.status = MigrationStatus.DISCOVERING

    def _finish(self, manifest: Manifest) -> None:
        manifest.completed_at = utcnow()

    def _fail_run(self, manifest: Manifest, error: Exception) -> None:
        manifest.status = MigrationStatus.FAILED
        manifest.warnings.append(f"Run aborted: {error}")

    def _set_status(self, status: MigrationStatus) -> None:
        def apply(manifest: Manifest) -> None:
            manifest.status = status
        self.state.update(apply)

    def _record_result(self, result: MigrationResult) -> None:
        self.results[result.component_id] = result

        def apply(manifest: Manifest) -> None:
            manifest.results.append(result.to_dict())
            if not result.success:
                manifest.failed.append(FailureEntry(
                    component_id=result.component_id,
                    error="; ".join(result.errors) or "validation failed",
                    error_type="ValidationFailure",
                ))
            elif result.requires_manual_review:
                manifest.manual_review.append(result.component_id)
            else:
                manifest.successful.append(result.component_id)

        self.state.update(apply)

    def _record_failure(
        self,
        component_id: str,
        error: Exception,
        result: Optional[MigrationResult] = None,
    ) -> None:
        logger.error(f"component={component_id} status=failed error={type(error).__name__}: {error}")
        if result is not None:
            self.results[component_id] = result

        def apply(manifest: Manifest) -> None:
            manifest.record_failure(component_id, error)
            if result is not None:
                manifest.results.append(result.to_dict())
                if result.requires_manual_review:
                    manifest.manual_review.append(component_id)

        self.state.update(apply)

    def _skip_remaining(self, component_ids: List[str]) -> None:
        def apply(manifest: Manifest) -> None:
            for component_id in component_ids:
                if component_id not in manifest.skipped:
                    manifest.skipped.append(component_id)
        self.state.update(apply)

    async def _save_manifest(self) -> None:
        if not self.config.write_manifest or self.config.dry_run:
            return
        artifact = GeneratedArtifact(
            relative_path=MANIFEST_FILE,
            content=json.dumps(self.state.get().to_dict(), indent=2) + "\n",
            kind=ArtifactKind.MANIFEST,
        )
        try:
            await asyncio.to_thread(self.writer.write_all, [artifact], self.config.output_root)
            logger.info(f"Manifest saved to {Path(self.config.output_root) / MANIFEST_FILE}")
        except MigrationError as e:
            logger.error(f"Failed to save manifest: {e}")


def load_manifest(path: str) -> Manifest:
    """Read a manifest written by a previous run."""
    with open(path, encoding="utf-8") as f:
        return Manifest.from_dict(json.load(f))


def preview_component(
    source_text: str,
    source_path: str = "Component.tsx",
    config: Optional[MigrationConfig] = None,
) -> Dict[str, Any]:
    """
    Run one component through the pipeline in memory, writing nothing.

    Returns:
        Dictionary with the component model, strategy, records, artifacts
        (including content) and validation outcome
    """
    config = config or MigrationConfig(source_root=".", output_root=".", dry_run=True)
    analyzer = BusinessLogicAnalyzer(policy=config.complexity)
    model = analyzer.enrich(TSXExtractor().extract(source_text, source_path))
    outcome = ComponentTransformer(policy=config.complexity).transform(model)
    artifacts = CodeGenerator().generate(outcome.transformed)
    validation = MigrationValidator(settings=config.validation, analyzer=analyzer).validate(
        model, artifacts, outcome.transformed.requires_manual_review
    )
    return {
        "component": model.to_dict(),
        "strategy": outcome.strategy.value,
        "records": [r.to_dict() for r in outcome.records],
        "artifacts": [dict(a.to_dict(), content=a.content) for a in artifacts],
        "validation": validation.to_dict(),
        "requires_manual_review": outcome.transformed.requires_manual_review,
    }
