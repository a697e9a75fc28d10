# File: kitegen/generator.py
"""
KiteGen - Generation Pipeline (Orchestrator)
=============================================

Connects every phase together:

    Schema source -> Normalization -> Validation -> Derivation -> Export

Workflow::

    1. Load and normalize the YAML schema (normalizer.py).
    2. Run the semantic validators (validators.py).
    3. Derive every artifact in memory, in a fixed order
       (scaffold.py, visitors.py).
    4. Hand the artifacts to ``ArtifactExporter`` (exporters.py), unless
       this is a dry run.
    5. Return a ``GenerationReport`` with metrics and status.

Error handling strategy:
    - Parse and shape errors abort the run before anything is derived.
    - Validation errors abort the run before anything is written.
    - Write failures are recorded per artifact; the remaining artifacts
      are still written.
"""

from __future__ import annotations

import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from kitegen.engine import TemplateEngine
from kitegen.errors import KiteGenError, ParseError, ShapeError
from kitegen.exporters import ArtifactExporter, ExportManifest, ExportResult
from kitegen.models import CodeArtifact, GenerationConfig, Schema
from kitegen.normalizer import load_schema, normalize_text
from kitegen.scaffold import ScaffoldBuilder
from kitegen.utils import Timer
from kitegen.validators import ValidationResult, validate_full
from kitegen.visitors import ComponentVisitor, EntityClassVisitor

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("kitegen.generator")


# ---------------------------------------------------------------------------
# Generation report
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class GenerationStepMetric:
    """Timing and outcome for a single pipeline step."""

    step_name: str = ""
    success: bool = True
    elapsed_seconds: float = 0.0
    detail: str = ""


@dataclass(frozen=False, slots=True)
class GenerationReport:
    """
    Report produced by every ``KiteGenerator`` entry point.

    ``artifacts`` holds the derived artifacts even when nothing was
    written (dry run or export failure).
    """

    success: bool = False
    dry_run: bool = False
    source_file: str = ""
    output_directory: str = ""

    # Metrics
    entity_count: int = 0
    join_table_count: int = 0
    artifact_counts: Dict[str, int] = field(default_factory=dict)
    total_files: int = 0
    total_bytes: int = 0
    total_lines: int = 0
    total_elapsed_seconds: float = 0.0

    # Sub-reports
    step_metrics: List[GenerationStepMetric] = field(default_factory=list)
    input_errors: List[str] = field(default_factory=list)
    validation_errors: List[str] = field(default_factory=list)
    validation_warnings: List[str] = field(default_factory=list)
    generation_errors: List[str] = field(default_factory=list)
    export_errors: List[str] = field(default_factory=list)

    schema: Optional[Schema] = None
    artifacts: List[CodeArtifact] = field(default_factory=list)
    manifest: Optional[ExportManifest] = None

    @property
    def failure_stage(self) -> Optional[str]:
        """First pipeline stage that failed, or ``None``."""
        if self.input_errors:
            return "input"
        if self.validation_errors:
            return "validation"
        if self.generation_errors:
            return "generation"
        if self.export_errors:
            return "export"
        if not self.success:
            return "validation"
        return None

    def summary(self) -> str:
        """Return a human-readable summary string."""
        lines: List[str] = []
        status: str = "SUCCESS" if self.success else "FAILED"
        if self.dry_run and self.success:
            status += " (dry run, nothing written)"
        rule: str = "=" * 60
        thin: str = "-" * 60
        lines.append(rule)
        lines.append("  KiteGen - Generation Report")
        lines.append(rule)
        lines.append(f"  Status:           {status}")
        lines.append(f"  Schema:           {self.source_file or '<in memory>'}")
        lines.append(f"  Output:           {self.output_directory}")
        lines.append(f"  Entities:         {self.entity_count}")
        lines.append(f"  Join tables:      {self.join_table_count}")
        lines.append(f"  Artifacts:        {len(self.artifacts)}")
        for kind, count in self.artifact_counts.items():
            lines.append(f"    {kind:<16s}{count}")
        lines.append(f"  Files written:    {self.total_files}")
        lines.append(f"  Total lines:      {self.total_lines:,}")
        lines.append(f"  Total bytes:      {self.total_bytes:,}")
        lines.append(f"  Total time:       {self.total_elapsed_seconds:.3f}s")
        lines.append(thin)

        if self.step_metrics:
            lines.append("  Pipeline Steps:")
            for step in self.step_metrics:
                icon: str = "✓" if step.success else "✗"
                lines.append(
                    f"    {icon} {step.step_name:<24s} "
                    f"{step.elapsed_seconds:>7.3f}s  "
                    f"{step.detail}"
                )

        sections = (
            ("Input Errors", self.input_errors, "✗"),
            ("Validation Errors", self.validation_errors, "✗"),
            ("Validation Warnings", self.validation_warnings, "!"),
            ("Generation Errors", self.generation_errors, "✗"),
            ("Export Errors", self.export_errors, "✗"),
        )
        for title, items, icon in sections:
            if not items:
                continue
            lines.append(thin)
            lines.append(f"  {title} ({len(items)}):")
            for item in items:
                lines.append(f"    {icon} {item}")

        lines.append(rule)
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "dry_run": self.dry_run,
            "source_file": self.source_file,
            "output_directory": self.output_directory,
            "entity_count": self.entity_count,
            "join_table_count": self.join_table_count,
            "artifact_counts": dict(self.artifact_counts),
            "artifacts": [a.target_path for a in self.artifacts],
            "files_written": self.total_files,
            "total_bytes": self.total_bytes,
            "total_lines": self.total_lines,
            "elapsed_seconds": round(self.total_elapsed_seconds, 4),
            "steps": [
                {
                    "name": s.step_name,
                    "success": s.success,
                    "elapsed_seconds": round(s.elapsed_seconds, 4),
                    "detail": s.detail,
                }
                for s in self.step_metrics
            ],
            "input_errors": list(self.input_errors),
            "validation_errors": list(self.validation_errors),
            "validation_warnings": list(self.validation_warnings),
            "generation_errors": list(self.generation_errors),
            "export_errors": list(self.export_errors),
        }


# ---------------------------------------------------------------------------
# In-memory derivation
# ---------------------------------------------------------------------------


def build_artifacts(
    schema: Schema,
    config: Optional[GenerationConfig] = None,
    engine: Optional[TemplateEngine] = None,
) -> List[CodeArtifact]:
    """
    Derive every artifact for *schema* without touching the filesystem.

    Order: schema, tables, data, db, entity classes, components, routes.
    """
    config = config or GenerationConfig()
    engine = engine or TemplateEngine()
    scaffold: ScaffoldBuilder = ScaffoldBuilder(schema, config, engine)

    artifacts: List[CodeArtifact] = scaffold.database_artifacts()
    artifacts.extend(EntityClassVisitor(schema, engine).visit_schema())
    artifacts.extend(ComponentVisitor(schema, engine).visit_schema())
    artifacts.extend(scaffold.route_artifacts())
    return artifacts


def preview_payload(schema: Schema, artifacts: List[CodeArtifact]) -> Dict[str, Any]:
    """JSON-serialisable preview of a run: the schema plus every artifact."""
    return {
        "success": True,
        "schema": schema.model_dump(mode="json"),
        "artifacts": [
            {
                "path": a.target_path,
                "kind": a.artifact_kind,
                "dependencies": list(a.dependencies),
                "content": a.content,
            }
            for a in artifacts
        ],
    }


# ---------------------------------------------------------------------------
# KiteGenerator: master orchestrator
# ---------------------------------------------------------------------------


class KiteGenerator:
    """
    Pipeline orchestrator.

    Usage::

        generator = KiteGenerator()

        report = generator.generate_from_file(
            Path("schema.yaml"), GenerationConfig(output_dir="./app")
        )
        print(report.summary())

    The generator is reusable; create once, call generate() many times.
    """

    def __init__(
        self,
        *,
        strict_validation: bool = True,
        fail_on_warnings: bool = False,
        engine: Optional[TemplateEngine] = None,
    ) -> None:
        """
        Args:
            strict_validation: If True, abort on any validation error.
            fail_on_warnings: If True, treat validation warnings as errors.
            engine: Template engine shared by all derivation steps.
        """
        self._strict_validation: bool = strict_validation
        self._fail_on_warnings: bool = fail_on_warnings
        self._engine: TemplateEngine = engine or TemplateEngine()

        logger.debug(
            "KiteGenerator initialised: strict=%s, fail_on_warnings=%s.",
            strict_validation,
            fail_on_warnings,
        )

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def generate_from_file(
        self,
        schema_path: Path,
        config: Optional[GenerationConfig] = None,
        *,
        dry_run: bool = False,
    ) -> GenerationReport:
        """Full pipeline: load file, normalize, validate, derive, export."""
        report: GenerationReport = GenerationReport(source_file=str(schema_path))
        schema: Optional[Schema] = None
        with Timer("load_schema") as t:
            try:
                schema = load_schema(Path(schema_path))
            except (FileNotFoundError, ParseError, ShapeError) as exc:
                error: Exception = exc
        if schema is None:
            return self._fail_input(report, error, t)

        self._record_loaded(report, schema, t)
        return self._run_pipeline(schema, config, report, dry_run)

    def generate_from_text(
        self,
        text: str,
        config: Optional[GenerationConfig] = None,
        *,
        source: str = "<string>",
        dry_run: bool = False,
    ) -> GenerationReport:
        report: GenerationReport = GenerationReport(source_file=source)
        schema: Optional[Schema] = None
        with Timer("load_schema") as t:
            try:
                schema = normalize_text(text, source=source)
            except (ParseError, ShapeError) as exc:
                error: Exception = exc
        if schema is None:
            return self._fail_input(report, error, t)

        self._record_loaded(report, schema, t)
        return self._run_pipeline(schema, config, report, dry_run)

    def generate(
        self,
        schema: Schema,
        config: Optional[GenerationConfig] = None,
        *,
        dry_run: bool = False,
    ) -> GenerationReport:
        """Pipeline from an already normalized schema."""
        report: GenerationReport = GenerationReport(source_file=schema.source_file or "")
        report.schema = schema
        report.entity_count = schema.entity_count
        report.join_table_count = len(schema.join_tables)
        return self._run_pipeline(schema, config, report, dry_run)

    def validate(
        self, schema: Schema, config: Optional[GenerationConfig] = None
    ) -> ValidationResult:
        return validate_full(schema, config or GenerationConfig())

    def preview(
        self, schema: Schema, config: Optional[GenerationConfig] = None
    ) -> List[CodeArtifact]:
        """Every artifact, in output order, without writing anything."""
        return build_artifacts(schema, config, self._engine)

    def preview_payload(
        self, schema: Schema, config: Optional[GenerationConfig] = None
    ) -> Dict[str, Any]:
        return preview_payload(schema, self.preview(schema, config))

    # -----------------------------------------------------------------
    # Internal: master pipeline
    # -----------------------------------------------------------------

    def _run_pipeline(
        self,
        schema: Schema,
        config: Optional[GenerationConfig],
        report: GenerationReport,
        dry_run: bool,
    ) -> GenerationReport:
        config = config or GenerationConfig()
        report.dry_run = dry_run
        report.output_directory = str(Path(config.output_dir).resolve())
        pipeline_start: float = time.perf_counter()

        if not self._step_validate(schema, config, report) and self._strict_validation:
            logger.error("Generation aborted by validation; no artifacts were written.")
            return self._finalise_report(report, time.perf_counter() - pipeline_start)

        artifacts: List[CodeArtifact] = self._step_generate(schema, config, report)
        if report.generation_errors:
            logger.error("Generation aborted; no artifacts were written.")
            return self._finalise_report(report, time.perf_counter() - pipeline_start)

        if dry_run:
            logger.info("Dry run: %d artifacts derived, none written.", len(artifacts))
        else:
            self._step_export(artifacts, config, report)

        return self._finalise_report(report, time.perf_counter() - pipeline_start)

    # -----------------------------------------------------------------
    # Pipeline steps
    # -----------------------------------------------------------------

    @staticmethod
    def _record_loaded(report: GenerationReport, schema: Schema, t: Timer) -> None:
        report.schema = schema
        report.entity_count = schema.entity_count
        report.join_table_count = len(schema.join_tables)
        report.step_metrics.append(
            GenerationStepMetric(
                step_name="Load Schema",
                success=True,
                elapsed_seconds=t.elapsed,
                detail=f"{schema.entity_count} entities, {len(schema.join_tables)} join tables",
            )
        )

    def _fail_input(
        self, report: GenerationReport, exc: Exception, t: Timer
    ) -> GenerationReport:
        report.input_errors.append(str(exc))
        report.step_metrics.append(
            GenerationStepMetric(
                step_name="Load Schema",
                success=False,
                elapsed_seconds=t.elapsed,
                detail=type(exc).__name__,
            )
        )
        logger.error("Cannot load schema: %s", exc)
        return self._finalise_report(report, t.elapsed)

    def _step_validate(
        self,
        schema: Schema,
        config: GenerationConfig,
        report: GenerationReport,
    ) -> bool:
        """True if validation passed (warnings pass unless fail_on_warnings)."""
        with Timer("validation") as t:
            result: ValidationResult = validate_full(schema, config)

        report.validation_errors.extend(str(e) for e in result.errors)
        report.validation_warnings.extend(str(w) for w in result.warnings)

        passed: bool = result.is_valid and not (self._fail_on_warnings and result.has_warnings)
        if result.has_errors:
            detail: str = f"{result.error_count} error(s)"
        elif result.has_warnings:
            detail = f"{result.warning_count} warning(s)"
        else:
            detail = "all checks passed"

        report.step_metrics.append(
            GenerationStepMetric(
                step_name="Validate Schema",
                success=passed,
                elapsed_seconds=t.elapsed,
                detail=detail,
            )
        )

        for err in result.errors:
            logger.error("  %s", err)
        for warn in result.warnings:
            logger.warning("  %s", warn)

        if passed:
            logger.info("Validation passed in %.3fs (%s).", t.elapsed, detail)
        return passed

    def _step_generate(
        self,
        schema: Schema,
        config: GenerationConfig,
        report: GenerationReport,
    ) -> List[CodeArtifact]:
        artifacts: List[CodeArtifact] = []
        with Timer("derivation") as t:
            try:
                artifacts = build_artifacts(schema, config, self._engine)
            except (KiteGenError, ValueError) as exc:
                error_msg: str = f"Derivation failed: {type(exc).__name__}: {exc}"
                report.generation_errors.append(error_msg)
                logger.error(error_msg)

        counts: Counter = Counter(a.artifact_kind for a in artifacts)
        report.artifacts = artifacts
        report.artifact_counts = dict(sorted(counts.items()))

        detail: str = f"{len(artifacts)} artifacts"
        report.step_metrics.append(
            GenerationStepMetric(
                step_name="Derive Artifacts",
                success=not report.generation_errors,
                elapsed_seconds=t.elapsed,
                detail=detail,
            )
        )
        logger.info("Derived %s in %.3fs.", detail, t.elapsed)
        return artifacts

    def _step_export(
        self,
        artifacts: List[CodeArtifact],
        config: GenerationConfig,
        report: GenerationReport,
    ) -> None:
        with Timer("export") as t:
            exporter: ArtifactExporter = ArtifactExporter(
                Path(config.output_dir),
                clean_before_export=config.clean_output,
                write_manifest=config.write_manifest,
            )
            result: ExportResult = exporter.export(artifacts)

        report.total_files = result.manifest.total_files
        report.total_bytes = result.manifest.total_bytes
        report.total_lines = result.manifest.total_lines
        report.export_errors.extend(result.errors)
        report.manifest = result.manifest

        report.step_metrics.append(
            GenerationStepMetric(
                step_name="Export to Filesystem",
                success=result.success,
                elapsed_seconds=t.elapsed,
                detail=f"{result.files_written}/{len(artifacts)} files",
            )
        )

    @staticmethod
    def _finalise_report(report: GenerationReport, total_elapsed: float) -> GenerationReport:
        report.total_elapsed_seconds = total_elapsed
        failed_step: bool = any(not s.success for s in report.step_metrics)
        report.success = not (
            report.input_errors
            or report.validation_errors
            or report.generation_errors
            or report.export_errors
            or failed_step
        )
        return report


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "GenerationStepMetric",
    "GenerationReport",
    "build_artifacts",
    "preview_payload",
    "KiteGenerator",
]

logger.debug("kitegen.generator loaded (%d public symbols).", len(__all__))
