"""All-or-nothing writer for the artifacts of one component."""

import os
import re
import secrets
import time
import logging
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from .base import BaseLoader, ContentValidator, LoadResult
from ..errors import MigrationError, OperationTimeout, WriteError
from ..extractors.syntax import parse_source
from ..models.migration import utcnow
from ..models.record import GeneratedArtifact

logger = logging.getLogger(__name__)

SOURCE_SUFFIXES = (".ts", ".tsx", ".js", ".jsx")


def syntax_validator(artifact: GeneratedArtifact) -> Optional[str]:
    """Source files must parse cleanly and have at least one import or export."""
    if not artifact.relative_path.endswith(SOURCE_SUFFIXES):
        return None
    content = artifact.content
    tree = parse_source(content, artifact.relative_path)
    if tree.has_errors:
        return f"syntax error near line {tree.first_error_line()}"
    if not re.search(r"^(import|export)\s", content, re.MULTILINE):
        return "no import or export statement"
    return None


def markdown_validator(artifact: GeneratedArtifact) -> Optional[str]:
    """Markdown files need a heading and closed code fences."""
    if not artifact.relative_path.endswith(".md"):
        return None
    if not re.search(r"^#\s+", artifact.content, re.MULTILINE):
        return "no heading"
    if artifact.content.count("```") % 2:
        return "unclosed code fence"
    return None


DEFAULT_VALIDATORS: Tuple[ContentValidator, ...] = (syntax_validator, markdown_validator)


class AtomicFileWriter(BaseLoader):
    """
    Writes a batch of artifacts so that either every file lands or none does.

    Each artifact is first staged to `<final>.tmp.<hex>` in its own directory
    and checked by the content validators. Only when every file is staged are
    existing finals moved aside and the temp files renamed into place. Any
    failure removes the temp files, restores the backups and deletes the
    directories created by this call.
    """

    def __init__(
        self,
        dry_run: bool = False,
        validators: Optional[Sequence[ContentValidator]] = None,
        encoding: str = "utf-8",
    ):
        super().__init__(dry_run, DEFAULT_VALIDATORS if validators is None else validators)
        self.encoding = encoding

    def write_all(
        self,
        artifacts: Sequence[GeneratedArtifact],
        output_root: str,
        deadline: Optional[float] = None,
    ) -> LoadResult:
        root = Path(output_root)
        result = LoadResult(
            output_root=str(root),
            total_attempted=len(artifacts),
            dry_run=self.dry_run,
            started_at=utcnow(),
        )

        staged: List[Tuple[Path, Path]] = []  # (temp, final)
        backups: List[Tuple[Path, Path]] = []  # (backup, final)
        committed: List[Path] = []
        created_dirs: List[Path] = []

        try:
            for artifact in artifacts:
                final = self._final_path(root, artifact)
                created_dirs.extend(self._ensure_parent(final))
                temp = final.with_name(f"{final.name}.tmp.{secrets.token_hex(6)}")
                staged.append((temp, final))
                self._stage(temp, artifact)

                problem = self.check_content(artifact)
                if problem:
                    raise WriteError(
                        f"Content validation failed for {artifact.relative_path}: {problem}", retryable=False,
                    )

            if deadline is not None and time.monotonic() > deadline:
                raise OperationTimeout(
                    f"Write deadline passed before committing {len(staged)} artifact(s) under {root}"
                )

            if self.dry_run:
                self._discard(staged)
                self._remove_dirs(created_dirs)
                result.completed_at = utcnow()
                logger.info(f"Dry run: staged {len(staged)} artifact(s) under {root}, nothing committed")
                return result

            for temp, final in staged:
                if final.exists():
                    backup = final.with_name(f"{final.name}.bak.{secrets.token_hex(6)}")
                    os.replace(final, backup)
                    backups.append((backup, final))
                self._commit(temp, final)
                committed.append(final)
        except Exception as e:
            self._rollback(staged, committed, backups, created_dirs)
            if isinstance(e, MigrationError):
                raise
            raise WriteError(f"Failed to write artifacts under {root}: {e}") from e

        for backup, _ in backups:
            backup.unlink(missing_ok=True)

        result.total_written = len(committed)
        result.total_replaced = len(backups)
        result.written_paths = [str(p) for p in committed]
        result.completed_at = utcnow()
        logger.debug(f"Wrote {result.total_written} artifact(s) under {root} in {result.duration_seconds:.3f}s")
        return result

    def _final_path(self, root: Path, artifact: GeneratedArtifact) -> Path:
        relative = Path(artifact.relative_path)
        if relative.is_absolute() or ".." in relative.parts:
            raise WriteError(f"Artifact path escapes the output root: {artifact.relative_path}", retryable=False)
        return root / relative

    def _ensure_parent(self, final: Path) -> List[Path]:
        """Create missing parent directories, returning the ones created (outermost first)."""
        missing = []
        parent = final.parent
        while not parent.exists():
            missing.append(parent)
            parent = parent.parent
        missing.reverse()
        for directory in missing:
            directory.mkdir()
        return missing

    def _stage(self, temp: Path, artifact: GeneratedArtifact) -> None:
        with open(temp, "w", encoding=self.encoding, newline="") as f:
            f.write(artifact.content)
            f.flush()
            os.fsync(f.fileno())

    def _commit(self, temp: Path, final: Path) -> None:
        os.replace(temp, final)

    def _discard(self, staged: List[Tuple[Path, Path]]) -> None:
        for temp, _ in staged:
            temp.unlink(missing_ok=True)

    def _rollback(
        self,
        staged: List[Tuple[Path, Path]],
        committed: List[Path],
        backups: List[Tuple[Path, Path]],
        created_dirs: List[Path],
    ) -> None:
        logger.warning(f"Rolling back {len(staged)} staged artifact(s)")
        self._discard(staged)
        restored = {final for _, final in backups}
        for final in committed:
            if final not in restored:
                final.unlink(missing_ok=True)
        for backup, final in backups:
            try:
                os.replace(backup, final)
            except OSError as e:
                logger.error(f"Could not restore {final} from {backup}: {e}")
        self._remove_dirs(created_dirs)

    def _remove_dirs(self, created_dirs: List[Path]) -> None:
        # Innermost first; a directory that still holds files is left alone.
        for directory in sorted(set(created_dirs), key=lambda p: len(p.parts), reverse=True):
            try:
                directory.rmdir()
            except OSError:
                logger.debug(f"Leaving non-empty directory {directory}")
