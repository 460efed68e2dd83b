"""In-memory storage for migration runs started through the API."""

import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from .models import MigrationCreate, MigrationResponse, MigrationStatusEnum, FailureResponse
from ..models.migration import Manifest, utcnow


@dataclass
class StoredMigration:
    id: str
    request: MigrationCreate
    created_at: datetime = field(default_factory=utcnow)
    status: MigrationStatusEnum = MigrationStatusEnum.PENDING
    manifest: Optional[Manifest] = None
    orchestrator: Optional[object] = None  # MigrationOrchestrator while running

    def to_response(self) -> MigrationResponse:
        manifest = self.manifest or Manifest(name=self.request.name)
        return MigrationResponse(
            id=self.id,
            name=self.request.name,
            status=self.status,
            source_root=self.request.source_root,
            output_root=self.request.output_root,
            dry_run=self.request.dry_run,
            created_at=self.created_at,
            started_at=manifest.started_at,
            completed_at=manifest.completed_at,
            order=manifest.order,
            successful=manifest.successful,
            manual_review=manifest.manual_review,
            failed=[FailureResponse(**f.to_dict()) for f in manifest.failed],
            skipped=manifest.skipped,
            cycles=manifest.cycles,
            warnings=manifest.warnings,
            results=manifest.results,
        )


class MigrationStorage:
    """Thread-safe registry of API-started runs."""

    def __init__(self):
        self._items: Dict[str, StoredMigration] = {}
        self._lock = threading.Lock()

    def create(self, request: MigrationCreate) -> StoredMigration:
        stored = StoredMigration(id=str(uuid.uuid4()), request=request)
        with self._lock:
            self._items[stored.id] = stored
        return stored

    def get(self, migration_id: str) -> Optional[StoredMigration]:
        with self._lock:
            return self._items.get(migration_id)

    def list_all(self) -> List[StoredMigration]:
        with self._lock:
            return sorted(self._items.values(), key=lambda m: m.created_at, reverse=True)

    def update_status(self, migration_id: str, status: MigrationStatusEnum) -> None:
        with self._lock:
            stored = self._items.get(migration_id)
            if stored:
                stored.status = status

    def update_manifest(self, migration_id: str, manifest: Manifest) -> None:
        with self._lock:
            stored = self._items.get(migration_id)
            if stored:
                stored.manifest = manifest
                stored.status = MigrationStatusEnum(manifest.status.value)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()


migration_storage = MigrationStorage()
