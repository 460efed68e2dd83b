"""Tests for ui_migrator.orchestrator."""

import threading
import time

import pytest

from ui_migrator.errors import ExtractionError
from ui_migrator.loaders.atomic_writer import AtomicFileWriter
from ui_migrator.models.component import ComponentKind
from ui_migrator.models.migration import MigrationStatus, ProcessingMode, RetryPolicy
from ui_migrator.orchestrator import (
    MANIFEST_FILE,
    MigrationOrchestrator,
    load_manifest,
    preview_component,
)
from ui_migrator.services.transformer import ComponentTransformer

from conftest import BROKEN_TSX, BUTTON_TSX, GREETING_TSX, write_tree

MIGRATED = [
    "components/Button.tsx",
    "components/Profile.tsx",
    "components/Toolbar.tsx",
    "hooks/useToggle.ts",
]


BRACES_TSX = """\
import React from 'react';

export const Braces = () => {
  const open = '{';
  return <span title={open}>{open}</span>;
};
"""


def _files(root):
    return sorted(str(p.relative_to(root)) for p in root.rglob("*") if p.is_file())


class FailingProfileCommit(AtomicFileWriter):
    """Fails the second of the three renames for Profile on every attempt."""

    def write_all(self, artifacts, output_root, deadline=None):
        self.commits = 0
        return super().write_all(artifacts, output_root, deadline)

    def _commit(self, temp, final):
        if final.parent.name == "Profile":
            self.commits += 1
            if self.commits == 2:
                raise OSError("No space left on device")
        super()._commit(temp, final)


class SlowStage(AtomicFileWriter):

    def _stage(self, temp, artifact):
        time.sleep(0.2)
        super()._stage(temp, artifact)


class SlowCommit(AtomicFileWriter):

    def _commit(self, temp, final):
        time.sleep(0.2)
        super()._commit(temp, final)


class ThreadRecordingTransformer(ComponentTransformer):

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.threads = set()

    def transform(self, model, logic=None):
        self.threads.add(threading.current_thread().name)
        return super().transform(model, logic)


def _run(config, **services):
    orchestrator = MigrationOrchestrator(config, **services)
    return orchestrator, orchestrator.run_migration()


class TestSerialRun:

    def test_migrates_every_component(self, source_tree, make_config, tmp_path):
        _, manifest = _run(make_config(source_tree))

        assert manifest.status == MigrationStatus.COMPLETED
        assert sorted(manifest.successful) == MIGRATED
        assert manifest.failed == []
        assert manifest.skipped == ["components/index.ts"]

        out = tmp_path / "out"
        for name in ("Button", "Toolbar", "Profile"):
            assert (out / name / f"{name}.tsx").exists()
            assert (out / name / "index.ts").exists()
            assert (out / name / "README.md").exists()
        assert (out / "useToggle" / "useToggle.ts").exists()

    def test_dependencies_are_migrated_first(self, source_tree, make_config):
        _, manifest = _run(make_config(source_tree))
        assert manifest.order.index("components/Button.tsx") < manifest.order.index("components/Toolbar.tsx")
        assert [r["component_id"] for r in manifest.results] == manifest.order

    def test_manifest_is_written_and_reloaded(self, source_tree, make_config, tmp_path):
        _, manifest = _run(make_config(source_tree))

        path = tmp_path / "out" / MANIFEST_FILE
        assert path.exists()
        loaded = load_manifest(str(path))
        assert loaded.run_id == manifest.run_id
        assert loaded.successful == manifest.successful
        assert loaded.status == MigrationStatus.COMPLETED

    def test_parse_failure_is_recorded_and_run_continues(self, source_tree, make_config):
        write_tree(source_tree, {"components/Broken.tsx": BROKEN_TSX})

        _, manifest = _run(make_config(source_tree))

        assert manifest.status == MigrationStatus.COMPLETED
        (failure,) = manifest.failed
        assert failure.component_id == "components/Broken.tsx"
        assert failure.error_type == "ExtractionError"
        assert sorted(manifest.successful) == MIGRATED

    def test_kind_filter_skips_other_components(self, source_tree, make_config):
        config = make_config(source_tree, kinds=[ComponentKind.UTILITY_FUNCTION])
        _, manifest = _run(config)

        assert manifest.successful == ["hooks/useToggle.ts"]
        assert "components/Button.tsx" in manifest.skipped

    def test_dry_run_writes_nothing(self, source_tree, make_config, tmp_path):
        _, manifest = _run(make_config(source_tree, dry_run=True))

        assert manifest.status == MigrationStatus.COMPLETED
        assert sorted(manifest.successful) == MIGRATED
        assert not (tmp_path / "out").exists()

    def test_subscribers_see_status_changes(self, source_tree, make_config):
        orchestrator = MigrationOrchestrator(make_config(source_tree))
        statuses = []
        orchestrator.state.subscribe(lambda manifest: statuses.append(manifest.status))

        orchestrator.run_migration()

        assert MigrationStatus.MIGRATING in statuses
        assert statuses[-1] == MigrationStatus.COMPLETED

    def test_cancel_before_start(self, source_tree, make_config, tmp_path):
        orchestrator = MigrationOrchestrator(make_config(source_tree))
        orchestrator.cancel("maintenance window")

        manifest = orchestrator.run_migration()

        assert manifest.status == MigrationStatus.CANCELLED
        assert manifest.successful == []
        assert not (tmp_path / "out" / "Button").exists()


class TestParallelRun:

    def test_same_outcome_as_serial(self, source_tree, make_config):
        config = make_config(source_tree, mode=ProcessingMode.PARALLEL, concurrency=2)
        _, manifest = _run(config)

        assert manifest.status == MigrationStatus.COMPLETED
        assert sorted(manifest.successful) == MIGRATED
        assert manifest.failed == []


class TestWriteFailures:
    """A component whose write fails leaves no output and does not stop the batch."""

    def test_failed_write_is_rolled_back(self, source_tree, make_config, tmp_path):
        _, manifest = _run(make_config(source_tree), writer=FailingProfileCommit())

        assert manifest.status == MigrationStatus.COMPLETED
        (failure,) = manifest.failed
        assert failure.component_id == "components/Profile.tsx"
        assert failure.error_type == "WriteError"
        assert not (tmp_path / "out" / "Profile").exists()
        assert sorted(manifest.successful) == [c for c in MIGRATED if c != "components/Profile.tsx"]
        assert (tmp_path / "out" / "Toolbar" / "Toolbar.tsx").exists()

    def test_braces_in_string_literals_are_written(self, tmp_path, make_config):
        source = write_tree(tmp_path / "src", {"Braces.tsx": BRACES_TSX})

        _, manifest = _run(make_config(source))

        assert manifest.failed == []
        assert manifest.successful == ["Braces.tsx"]
        assert "'{'" in (tmp_path / "out" / "Braces" / "Braces.tsx").read_text()

    def test_late_write_commits_nothing(self, tmp_path, make_config):
        source = write_tree(tmp_path / "src", {"Button.tsx": BUTTON_TSX})
        config = make_config(source, operation_timeout=0.1, retry=RetryPolicy(max_attempts=1, base_delay=0.0))

        _, manifest = _run(config, writer=SlowStage())

        (failure,) = manifest.failed
        assert failure.error_type == "OperationTimeout"
        assert manifest.successful == []
        assert _files(tmp_path / "out") == [MANIFEST_FILE]

    def test_slow_commit_finishes_and_is_recorded(self, tmp_path, make_config):
        source = write_tree(tmp_path / "src", {"Button.tsx": BUTTON_TSX})
        config = make_config(source, operation_timeout=0.1, retry=RetryPolicy(max_attempts=1, base_delay=0.0))

        _, manifest = _run(config, writer=SlowCommit())

        assert manifest.failed == []
        assert manifest.successful == ["Button.tsx"]
        assert _files(tmp_path / "out") == [
            "Button/Button.tsx", "Button/README.md", "Button/index.ts", MANIFEST_FILE,
        ]

    def test_preparation_runs_off_the_event_loop(self, source_tree, make_config):
        transformer = ThreadRecordingTransformer()

        _, manifest = _run(make_config(source_tree), transformer=transformer)

        assert sorted(manifest.successful) == MIGRATED
        assert transformer.threads
        assert threading.main_thread().name not in transformer.threads

    def test_component_timeout_covers_preparation(self, source_tree, make_config, tmp_path):
        _, manifest = _run(make_config(source_tree, component_timeout=1e-9))

        assert manifest.successful == []
        assert sorted(manifest.failed_ids()) == MIGRATED
        assert {f.error_type for f in manifest.failed} == {"OperationTimeout"}
        assert not (tmp_path / "out" / "Button").exists()


class TestCycles:

    def test_cycle_fails_the_run(self, cyclic_tree, make_config, tmp_path):
        _, manifest = _run(make_config(cyclic_tree))

        assert manifest.status == MigrationStatus.FAILED
        assert manifest.cycles == [["A.tsx", "B.tsx"]]
        assert manifest.successful == []
        assert any(w.startswith("Run aborted:") for w in manifest.warnings)
        assert not (tmp_path / "out" / "Button").exists()

    def test_skip_cycles_migrates_the_rest(self, cyclic_tree, make_config):
        _, manifest = _run(make_config(cyclic_tree, skip_cycles=True))

        assert manifest.status == MigrationStatus.COMPLETED
        assert manifest.successful == ["Button.tsx"]
        assert sorted(manifest.failed_ids()) == ["A.tsx", "B.tsx"]
        assert {f.error_type for f in manifest.failed} == {"ResolutionError"}
        assert manifest.cycles == [["A.tsx", "B.tsx"]]


class TestPreview:

    def test_preview_runs_in_memory(self):
        preview = preview_component(GREETING_TSX, "Greeting.tsx")

        assert preview["strategy"] == "pattern_mapping"
        assert preview["validation"]["valid"]
        assert not preview["requires_manual_review"]
        paths = [a["relative_path"] for a in preview["artifacts"]]
        assert paths == ["Greeting/Greeting.tsx", "Greeting/index.ts", "Greeting/README.md"]
        assert "useState<string>('')" in preview["artifacts"][0]["content"]

    def test_preview_of_broken_source_raises(self):
        with pytest.raises(ExtractionError):
            preview_component(BROKEN_TSX, "Broken.tsx")
