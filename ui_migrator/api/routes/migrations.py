"""Migration run endpoints."""

import logging

from fastapi import APIRouter, BackgroundTasks, HTTPException

from ..models import (
    MigrationCreate,
    MigrationListResponse,
    MigrationResponse,
    MigrationStatusEnum,
    TERMINAL_STATUSES,
)
from ..storage import migration_storage

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=MigrationResponse)
async def create_migration(data: MigrationCreate, background_tasks: BackgroundTasks):
    """Create a migration run and start it in the background."""
    try:
        data.to_config()
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    stored = migration_storage.create(data)
    background_tasks.add_task(run_migration_task, stored.id)
    return stored.to_response()


@router.get("", response_model=MigrationListResponse)
async def list_migrations():
    """List all migration runs."""
    migrations = [m.to_response() for m in migration_storage.list_all()]
    return MigrationListResponse(migrations=migrations, total=len(migrations))


@router.get("/{migration_id}", response_model=MigrationResponse)
async def get_migration(migration_id: str):
    """Get a specific migration run."""
    stored = migration_storage.get(migration_id)
    if not stored:
        raise HTTPException(status_code=404, detail="Migration not found")
    return stored.to_response()


@router.post("/{migration_id}/cancel")
async def cancel_migration(migration_id: str):
    """Cancel a pending or running migration."""
    stored = migration_storage.get(migration_id)
    if not stored:
        raise HTTPException(status_code=404, detail="Migration not found")

    if stored.status in TERMINAL_STATUSES:
        raise HTTPException(
            status_code=400,
            detail=f"Cannot cancel migration in status: {stored.status.value}"
        )

    if stored.orchestrator is not None:
        stored.orchestrator.cancel("cancelled through the API")
    else:
        migration_storage.update_status(migration_id, MigrationStatusEnum.CANCELLED)
    return {"status": "cancelling", "migration_id": migration_id}


async def run_migration_task(migration_id: str):
    """Background task running the orchestrator for a stored migration."""
    from ...orchestrator import MigrationOrchestrator

    stored = migration_storage.get(migration_id)
    if not stored or stored.status == MigrationStatusEnum.CANCELLED:
        return

    orchestrator = MigrationOrchestrator(stored.request.to_config())
    stored.orchestrator = orchestrator
    unsubscribe = orchestrator.state.subscribe(
        lambda manifest: migration_storage.update_manifest(migration_id, manifest)
    )
    try:
        await orchestrator.run_migration_async()
    except Exception as e:
        logger.error(f"Migration {migration_id} failed: {e}")
        migration_storage.update_status(migration_id, MigrationStatusEnum.FAILED)
    finally:
        unsubscribe()
        stored.orchestrator = None
