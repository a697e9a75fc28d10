# File: kitegen/exporters.py
"""
KiteGen - Artifact Exporter
============================

Responsible for:
    1. Optionally removing previously generated files.
    2. Writing each artifact atomically (write-to-temp then rename).
    3. Recording a failure per artifact without stopping the batch.
    4. Producing an export manifest with checksums.

Writes are sequential. Each artifact has its own path, so a failed write
never affects another artifact; files written before a failure stay on
disk. One exporter (and one generation process) per output directory at
a time.
"""

from __future__ import annotations

import json
import logging
import shutil
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Sequence, Tuple

from kitegen.errors import ArtifactWriteError
from kitegen.models import CodeArtifact
from kitegen.templates import ROUTE_TEMPLATES
from kitegen.utils import Timer, count_lines, sha256_hex, write_file
from kitegen.visitors import GENERATED_DIR

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("kitegen.exporters")

MANIFEST_FILENAME: str = ".kitegen-manifest.json"

# Paths removed by a clean export; everything else in the project is kept
CLEAN_TARGETS: Tuple[str, ...] = (GENERATED_DIR, *ROUTE_TEMPLATES)


# ---------------------------------------------------------------------------
# Data classes for export results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FileRecord:
    """Immutable record of a single exported file."""

    relative_path: str
    absolute_path: str
    artifact_kind: str
    size_bytes: int
    line_count: int
    sha256: str


@dataclass(frozen=False, slots=True)
class ExportManifest:
    """Every exported file of one run, serialisable to JSON."""

    generator_version: str = ""
    export_timestamp: str = ""
    output_directory: str = ""
    total_files: int = 0
    total_bytes: int = 0
    total_lines: int = 0
    files: List[FileRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "generator_version": self.generator_version,
            "export_timestamp": self.export_timestamp,
            "output_directory": self.output_directory,
            "total_files": self.total_files,
            "total_bytes": self.total_bytes,
            "total_lines": self.total_lines,
            "files": [
                {
                    "path": f.relative_path,
                    "kind": f.artifact_kind,
                    "size_bytes": f.size_bytes,
                    "line_count": f.line_count,
                    "sha256": f.sha256,
                }
                for f in self.files
            ],
        }

    def to_json(self, indent_size: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent_size, ensure_ascii=False)


@dataclass(frozen=True, slots=True)
class ExportResult:
    """
    Final result returned by :meth:`ArtifactExporter.export`.

    ``failures`` holds one :class:`ArtifactWriteError` per artifact that
    could not be written.
    """

    success: bool
    manifest: ExportManifest
    failures: Tuple[ArtifactWriteError, ...]
    warnings: Tuple[str, ...]
    elapsed_seconds: float

    @property
    def errors(self) -> Tuple[str, ...]:
        return tuple(str(f) for f in self.failures)

    @property
    def files_written(self) -> int:
        return self.manifest.total_files


# ---------------------------------------------------------------------------
# ArtifactExporter class
# ---------------------------------------------------------------------------


class ArtifactExporter:
    """
    Writes :class:`CodeArtifact` objects below an output directory.

    Usage::

        exporter = ArtifactExporter(Path("./app"), write_manifest=True)
        result = exporter.export(artifacts)

    Thread-safety: NOT thread-safe. Use one exporter per output directory.
    """

    def __init__(
        self,
        output_dir: Path,
        *,
        clean_before_export: bool = False,
        atomic_writes: bool = True,
        write_manifest: bool = False,
    ) -> None:
        self._output_dir: Path = Path(output_dir).resolve()
        self._clean_before_export: bool = clean_before_export
        self._atomic_writes: bool = atomic_writes
        self._write_manifest: bool = write_manifest

        self._failures: List[ArtifactWriteError] = []
        self._warnings: List[str] = []
        self._file_records: List[FileRecord] = []

        logger.debug(
            "ArtifactExporter initialised: output_dir=%s, atomic=%s.",
            self._output_dir,
            self._atomic_writes,
        )

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def export(self, artifacts: Sequence[CodeArtifact]) -> ExportResult:
        """Write every artifact and return the outcome."""
        self._failures = []
        self._warnings = []
        self._file_records = []

        with Timer("export") as timer:
            self._pre_export_cleanup()
            for artifact in artifacts:
                try:
                    self._file_records.append(self._write_artifact(artifact))
                except ArtifactWriteError as exc:
                    self._failures.append(exc)
                    logger.error("%s", exc)

            if self._write_manifest:
                self._write_manifest_file()

        manifest: ExportManifest = self._build_manifest()
        success: bool = not self._failures

        if success:
            logger.info(
                "Export completed: %d files, %d bytes, %.3fs.",
                manifest.total_files,
                manifest.total_bytes,
                timer.elapsed,
            )
        else:
            logger.error(
                "Export finished with %d failed artifact(s); %d of %d written.",
                len(self._failures),
                len(self._file_records),
                len(artifacts),
            )

        return ExportResult(
            success=success,
            manifest=manifest,
            failures=tuple(self._failures),
            warnings=tuple(self._warnings),
            elapsed_seconds=timer.elapsed,
        )

    # -----------------------------------------------------------------
    # Internal
    # -----------------------------------------------------------------

    def _pre_export_cleanup(self) -> None:
        if not self._clean_before_export:
            return

        for rel_path in CLEAN_TARGETS:
            target: Path = self._output_dir / rel_path
            if not target.exists():
                continue
            try:
                if target.is_dir():
                    shutil.rmtree(target)
                else:
                    target.unlink()
                logger.info("Removed previously generated %s", target)
            except OSError as exc:
                warning_msg: str = f"Could not remove {target}: {exc}"
                self._warnings.append(warning_msg)
                logger.warning(warning_msg)

    def _write_artifact(self, artifact: CodeArtifact) -> FileRecord:
        full_path: Path = self._output_dir / artifact.target_path
        try:
            size_bytes: int = write_file(full_path, artifact.content, atomic=self._atomic_writes)
        except OSError as exc:
            raise ArtifactWriteError(artifact.target_path, str(exc)) from exc

        logger.debug("Wrote %s (%d bytes).", artifact.target_path, size_bytes)
        return FileRecord(
            relative_path=artifact.target_path,
            absolute_path=str(full_path),
            artifact_kind=str(artifact.artifact_kind),
            size_bytes=size_bytes,
            line_count=count_lines(artifact.content),
            sha256=sha256_hex(artifact.content),
        )

    def _build_manifest(self) -> ExportManifest:
        import kitegen

        return ExportManifest(
            generator_version=kitegen.__version__,
            export_timestamp=time.strftime("%Y-%m-%dT%H:%M:%S%z"),
            output_directory=str(self._output_dir),
            total_files=len(self._file_records),
            total_bytes=sum(r.size_bytes for r in self._file_records),
            total_lines=sum(r.line_count for r in self._file_records),
            files=list(self._file_records),
        )

    def _write_manifest_file(self) -> None:
        """The manifest lists artifacts only, never itself."""
        manifest_path: Path = self._output_dir / MANIFEST_FILENAME
        try:
            write_file(manifest_path, self._build_manifest().to_json() + "\n")
            logger.debug("Wrote manifest to %s.", manifest_path)
        except OSError as exc:
            self._warnings.append(f"Could not write manifest: {exc}")
            logger.warning("Failed to write manifest: %s", exc)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "MANIFEST_FILENAME",
    "CLEAN_TARGETS",
    "FileRecord",
    "ExportManifest",
    "ExportResult",
    "ArtifactExporter",
]

logger.debug("kitegen.exporters loaded (%d public symbols).", len(__all__))
