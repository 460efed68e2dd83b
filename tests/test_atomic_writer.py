"""Tests for ui_migrator.loaders.atomic_writer."""

import time

import pytest

from ui_migrator.errors import OperationTimeout, WriteError
from ui_migrator.loaders.atomic_writer import (
    AtomicFileWriter,
    markdown_validator,
    syntax_validator,
)
from ui_migrator.models.record import ArtifactKind, GeneratedArtifact


def _artifacts(name="Button"):
    return [
        GeneratedArtifact(f"{name}/{name}.tsx", f"export const {name} = () => {{\n  return null;\n}};\n",
                          ArtifactKind.PRIMARY_SOURCE),
        GeneratedArtifact(f"{name}/index.ts", f"export * from './{name}';\n", ArtifactKind.BARREL),
        GeneratedArtifact(f"{name}/README.md", f"# {name}\n", ArtifactKind.DOCUMENTATION),
    ]


def _files(root):
    return sorted(str(p.relative_to(root)) for p in root.rglob("*") if p.is_file())


class FailingSecondCommit(AtomicFileWriter):
    """Writer whose second rename fails, as a full disk would."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.commits = 0

    def _commit(self, temp, final):
        self.commits += 1
        if self.commits == 2:
            raise OSError("No space left on device")
        super()._commit(temp, final)


class SlowStage(AtomicFileWriter):
    """Writer whose staging outlasts a short deadline."""

    def _stage(self, temp, artifact):
        time.sleep(0.05)
        super()._stage(temp, artifact)


class TestWriteAll:

    def test_writes_every_artifact(self, tmp_path):
        result = AtomicFileWriter().write_all(_artifacts(), str(tmp_path))

        assert result.success
        assert result.total_written == 3
        assert result.total_replaced == 0
        assert _files(tmp_path) == ["Button/Button.tsx", "Button/README.md", "Button/index.ts"]
        assert (tmp_path / "Button" / "index.ts").read_text() == "export * from './Button';\n"

    def test_replaces_existing_files(self, tmp_path):
        AtomicFileWriter().write_all(_artifacts(), str(tmp_path))
        result = AtomicFileWriter().write_all(_artifacts(), str(tmp_path))

        assert result.total_replaced == 3
        assert _files(tmp_path) == ["Button/Button.tsx", "Button/README.md", "Button/index.ts"]

    def test_dry_run_leaves_no_trace(self, tmp_path):
        result = AtomicFileWriter(dry_run=True).write_all(_artifacts(), str(tmp_path))

        assert result.dry_run
        assert result.total_written == 0
        assert list(tmp_path.iterdir()) == []


class TestRollback:
    """A failure part-way through leaves the tree as it was."""

    def test_failed_commit_removes_everything(self, tmp_path):
        writer = FailingSecondCommit()

        with pytest.raises(WriteError):
            writer.write_all(_artifacts(), str(tmp_path))

        assert writer.commits == 2
        assert list(tmp_path.iterdir()) == []

    def test_failed_commit_restores_previous_files(self, tmp_path):
        target = tmp_path / "Button"
        target.mkdir()
        (target / "Button.tsx").write_text("// v1 output\n")

        with pytest.raises(WriteError):
            FailingSecondCommit().write_all(_artifacts(), str(tmp_path))

        assert _files(tmp_path) == ["Button/Button.tsx"]
        assert (target / "Button.tsx").read_text() == "// v1 output\n"

    def test_path_escape_is_permanent(self, tmp_path):
        artifacts = _artifacts() + [GeneratedArtifact("../evil.ts", "export {};\n", ArtifactKind.BARREL)]

        with pytest.raises(WriteError) as info:
            AtomicFileWriter().write_all(artifacts, str(tmp_path / "out"))

        assert not info.value.retryable
        assert not (tmp_path / "evil.ts").exists()
        assert not (tmp_path / "out").exists()

    def test_invalid_content_is_never_committed(self, tmp_path):
        artifacts = _artifacts()
        artifacts[0] = GeneratedArtifact("Button/Button.tsx", "export const Button = () => {\n",
                                         ArtifactKind.PRIMARY_SOURCE)

        with pytest.raises(WriteError) as info:
            AtomicFileWriter().write_all(artifacts, str(tmp_path))

        assert "syntax error near line" in str(info.value)
        assert not info.value.retryable
        assert list(tmp_path.iterdir()) == []


class TestDeadline:

    def test_late_staging_commits_nothing(self, tmp_path):
        deadline = time.monotonic() + 0.01

        with pytest.raises(OperationTimeout):
            SlowStage().write_all(_artifacts(), str(tmp_path), deadline)

        assert list(tmp_path.iterdir()) == []

    def test_late_staging_keeps_previous_files(self, tmp_path):
        AtomicFileWriter().write_all(_artifacts(), str(tmp_path))
        (tmp_path / "Button" / "README.md").write_text("# Button v1\n")

        with pytest.raises(OperationTimeout):
            SlowStage().write_all(_artifacts(), str(tmp_path), time.monotonic())

        assert _files(tmp_path) == ["Button/Button.tsx", "Button/README.md", "Button/index.ts"]
        assert (tmp_path / "Button" / "README.md").read_text() == "# Button v1\n"

    def test_deadline_in_the_future_writes(self, tmp_path):
        result = SlowStage().write_all(_artifacts(), str(tmp_path), time.monotonic() + 60)
        assert result.total_written == 3


class TestContentValidators:

    def test_source_syntax(self):
        ok = GeneratedArtifact("A/A.tsx", "export const A = () => {};\n", ArtifactKind.PRIMARY_SOURCE)
        no_export = GeneratedArtifact("A/A.tsx", "const A = 1;\n", ArtifactKind.PRIMARY_SOURCE)
        unclosed = GeneratedArtifact("A/A.tsx", "export const A = () => {\n", ArtifactKind.PRIMARY_SOURCE)
        readme = GeneratedArtifact("A/README.md", "{", ArtifactKind.DOCUMENTATION)
        assert syntax_validator(ok) is None
        assert syntax_validator(no_export) == "no import or export statement"
        assert syntax_validator(unclosed).startswith("syntax error near line")
        assert syntax_validator(readme) is None

    def test_braces_inside_literals_are_not_counted(self):
        source = (
            "export const Braces = () => {\n"
            "  const open = '{';\n"
            "  const pattern = /\\}+/;\n"
            "  return <span title={`}}`}>{open} {'{'}</span>;\n"
            "};\n"
        )
        artifact = GeneratedArtifact("Braces/Braces.tsx", source, ArtifactKind.PRIMARY_SOURCE)
        assert syntax_validator(artifact) is None

    def test_typescript_barrel_is_parsed_as_ts(self):
        barrel = GeneratedArtifact("A/index.ts", "export * from './A';\n", ArtifactKind.BARREL)
        assert syntax_validator(barrel) is None

    def test_markdown(self):
        assert markdown_validator(GeneratedArtifact("A/README.md", "# A\n", ArtifactKind.DOCUMENTATION)) is None
        assert markdown_validator(
            GeneratedArtifact("A/README.md", "text\n", ArtifactKind.DOCUMENTATION)
        ) == "no heading"
        assert markdown_validator(
            GeneratedArtifact("A/README.md", "# A\n```tsx\n", ArtifactKind.DOCUMENTATION)
        ) == "unclosed code fence"
