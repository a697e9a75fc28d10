# File: kitegen/cli.py
"""
KiteGen - Command-Line Interface
=================================

Usage examples::

    # Generate into a SvelteKit project
    kitegen -s schema.yaml -o ./my-app

    # Custom database name, no generic routes, write a manifest
    kitegen -s schema.yaml -o ./my-app --db-name blog-db --no-routes --manifest

    # Validate only (no file output)
    kitegen -s schema.yaml --validate-only

    # Derive everything in memory and print it as JSON
    kitegen -s schema.yaml --dry-run --json

Exit codes:
    0 - success
    1 - validation error
    2 - generation error
    3 - export error
    4 - input error (missing file, malformed YAML, unrecognised shorthand,
        invalid option)
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, NoReturn, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError

# ---------------------------------------------------------------------------
# Logger (configured in _setup_logging)
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("kitegen")


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_VALIDATION_ERROR: int = 1
EXIT_GENERATION_ERROR: int = 2
EXIT_EXPORT_ERROR: int = 3
EXIT_INPUT_ERROR: int = 4

_STAGE_EXIT_CODES: Dict[str, int] = {
    "input": EXIT_INPUT_ERROR,
    "validation": EXIT_VALIDATION_ERROR,
    "generation": EXIT_GENERATION_ERROR,
    "export": EXIT_EXPORT_ERROR,
}


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure the ``kitegen`` logger.

    Args:
        verbosity: -1 = ERROR, 0 = WARNING, 1 = INFO, 2+ = DEBUG.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    elif verbosity == 0:
        level = logging.WARNING
    else:
        level = logging.ERROR

    handler: logging.StreamHandler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s", datefmt="%H:%M:%S"
        )
    )

    root_logger: logging.Logger = logging.getLogger("kitegen")
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    from kitegen import __version__

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="kitegen",
        description=(
            "KiteGen - SvelteKit + Dexie code generator.\n\n"
            "Turns a YAML entity schema into validation schemas, table "
            "definitions, reactive entity classes, Svelte components and "
            "generic routes."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s -s schema.yaml -o ./my-app\n"
            "  %(prog)s -s schema.yaml -o ./my-app --db-name blog-db --clean\n"
            "  %(prog)s -s schema.yaml --validate-only\n"
            "  %(prog)s -s schema.yaml --dry-run --json\n"
        ),
    )

    parser.add_argument("--version", action="version", version=f"KiteGen v{__version__}")

    parser.add_argument(
        "-s", "--schema",
        type=str,
        required=True,
        metavar="PATH",
        help="Path to the YAML schema file.",
    )
    parser.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        metavar="DIR",
        help=(
            "Root of the SvelteKit project to generate into. "
            "Required unless --validate-only or --dry-run is set."
        ),
    )

    # --- Modes ---
    mode_group = parser.add_argument_group("operation modes")
    mode_group.add_argument(
        "--validate-only",
        action="store_true",
        default=False,
        help="Only normalize and validate the schema.",
    )
    mode_group.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Derive every artifact but don't write anything.",
    )
    mode_group.add_argument(
        "--json",
        action="store_true",
        default=False,
        help="Print the report as JSON (with --dry-run: every artifact too).",
    )

    # --- Configuration ---
    config_group = parser.add_argument_group("configuration")
    config_group.add_argument(
        "--db-name",
        type=str,
        default="app-db",
        metavar="NAME",
        help="Name of the client-side database (default: app-db).",
    )
    config_group.add_argument(
        "--no-routes",
        action="store_true",
        default=False,
        help="Don't generate the generic [table] routes and layout.",
    )

    # --- Behaviour flags ---
    behaviour_group = parser.add_argument_group("behaviour flags")
    behaviour_group.add_argument(
        "--clean",
        action="store_true",
        default=False,
        help="Remove previously generated files before writing.",
    )
    behaviour_group.add_argument(
        "--manifest",
        action="store_true",
        default=False,
        help="Write .kitegen-manifest.json with sizes and checksums.",
    )
    behaviour_group.add_argument(
        "--fail-on-warnings",
        action="store_true",
        default=False,
        help="Treat validation warnings as errors.",
    )

    # --- Verbosity ---
    verbosity_group = parser.add_argument_group("verbosity")
    verbosity_group.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for INFO, -vv for DEBUG).",
    )
    verbosity_group.add_argument(
        "-q", "--quiet",
        action="store_true",
        default=False,
        help="Suppress all output except errors.",
    )

    return parser


# ---------------------------------------------------------------------------
# Modes
# ---------------------------------------------------------------------------


def _print_json(payload: Dict[str, Any]) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def _run_validate_only(schema_path: Path, config: Any, args: argparse.Namespace) -> int:
    from kitegen.errors import ParseError, ShapeError
    from kitegen.normalizer import load_schema
    from kitegen.utils import Timer
    from kitegen.validators import validate_full

    logger.info("Running validation-only mode for: %s", schema_path)

    try:
        schema = load_schema(schema_path)
    except (FileNotFoundError, ParseError, ShapeError) as exc:
        logger.error("Failed to load schema: %s", exc)
        if args.json:
            _print_json({"valid": False, "input_error": str(exc)})
        return EXIT_INPUT_ERROR

    with Timer("validation") as t:
        result = validate_full(schema, config)

    failed: bool = not result.is_valid or (args.fail_on_warnings and result.has_warnings)

    if args.json:
        _print_json(
            {
                "valid": not failed,
                "entities": schema.entity_names,
                "join_tables": list(schema.join_tables),
                "items": [item.to_dict() for item in result.all_items],
            }
        )
    elif not args.quiet:
        print(f"\n{'=' * 50}")
        print("  Schema Validation Report")
        print(f"{'=' * 50}")
        print(f"  File:        {schema_path.name}")
        print(f"  Entities:    {schema.entity_count}")
        print(f"  Join tables: {len(schema.join_tables)}")
        print(f"  Time:        {t.elapsed:.3f}s")
        print(f"  Valid:       {'No' if failed else 'Yes'}")
        print()
        print(result.format_report())
        print(f"{'=' * 50}\n")

    return EXIT_VALIDATION_ERROR if failed else EXIT_SUCCESS


def _run_generation(schema_path: Path, config: Any, args: argparse.Namespace) -> int:
    from kitegen.generator import GenerationReport, KiteGenerator, preview_payload

    generator: KiteGenerator = KiteGenerator(fail_on_warnings=args.fail_on_warnings)

    if args.dry_run:
        logger.info("Dry-run mode: files will not be written to disk.")

    report: GenerationReport = generator.generate_from_file(
        schema_path, config, dry_run=args.dry_run
    )

    if args.json:
        payload: Dict[str, Any] = report.to_dict()
        if args.dry_run and report.success and report.schema is not None:
            payload["preview"] = preview_payload(report.schema, report.artifacts)
        _print_json(payload)
    elif not args.quiet:
        print(report.summary())

    if report.success:
        return EXIT_SUCCESS
    return _STAGE_EXIT_CODES.get(report.failure_stage or "", EXIT_GENERATION_ERROR)


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def cli_main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """
    Main CLI entry point.

    Can be called from ``__main__.py`` or directly for testing.
    """
    from kitegen.models import GenerationConfig

    parser: argparse.ArgumentParser = _build_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    _setup_logging(-1 if args.quiet else args.verbose)

    schema_path: Path = Path(args.schema).resolve()
    if not schema_path.is_file():
        logger.error("Schema file not found: %s", schema_path)
        sys.exit(EXIT_INPUT_ERROR)

    if args.output is None and not (args.validate_only or args.dry_run):
        logger.error(
            "Output directory is required for generation. "
            "Use -o/--output, --dry-run or --validate-only."
        )
        parser.print_usage(sys.stderr)
        sys.exit(EXIT_INPUT_ERROR)

    try:
        config: GenerationConfig = GenerationConfig(
            output_dir=args.output or ".",
            db_name=args.db_name,
            generate_routes=not args.no_routes,
            clean_output=args.clean,
            write_manifest=args.manifest,
        )
    except PydanticValidationError as exc:
        logger.error("Invalid option: %s", exc)
        sys.exit(EXIT_INPUT_ERROR)

    if args.validate_only:
        sys.exit(_run_validate_only(schema_path, config, args))

    logger.info("Schema:  %s", schema_path)
    logger.info("Output:  %s", Path(config.output_dir).resolve())

    exit_code: int = _run_generation(schema_path, config, args)

    if exit_code == EXIT_SUCCESS:
        logger.info("Generation completed successfully.")
    else:
        logger.error("Generation failed with exit code %d.", exit_code)

    sys.exit(exit_code)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "cli_main",
    "EXIT_SUCCESS",
    "EXIT_VALIDATION_ERROR",
    "EXIT_GENERATION_ERROR",
    "EXIT_EXPORT_ERROR",
    "EXIT_INPUT_ERROR",
]

logger.debug("kitegen.cli loaded (%d public symbols).", len(__all__))
