"""
Roadmap Runner
==============

Reconciles a project's specifications with its source tree and writes the
roadmap.

Usage:
    spec-roadmap --project /path/to/project
    spec-roadmap --project . --format markdown --format json --output out/
    spec-roadmap --project . --features proposals.yaml --team-size 3
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .config import DEFAULT_CONFIG_FILE, EngineConfig
from .core.exceptions import SpecRoadmapError
from .core.logging import configure_logging, log_exception
from .pipeline import ReconciliationPipeline, load_feature_proposals
from .roadmap import EXPORT_FORMATS, RoadmapExporter

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_DIR = Path(".spec-roadmap")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="spec-roadmap",
        description="Reconcile specifications with code and generate a delivery roadmap",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--project",
        type=Path,
        default=Path.cwd(),
        help="Project directory (default: current directory)",
    )
    parser.add_argument(
        "--output",
        type=Path,
        help=f"Output directory for roadmap files (default: project/{DEFAULT_OUTPUT_DIR})",
    )
    parser.add_argument(
        "--format",
        dest="formats",
        action="append",
        choices=[*EXPORT_FORMATS, "all"],
        help="Export format, repeatable (default: markdown and json)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help=f"Engine configuration file (default: project/{DEFAULT_CONFIG_FILE})",
    )
    parser.add_argument("--team-size", type=int, help="Developers available per phase")
    parser.add_argument("--threshold", type=int, help="Minimum gap confidence (0-100)")
    parser.add_argument(
        "--as-is",
        action="store_true",
        help="Treat the architecture document as a description of existing code",
    )
    parser.add_argument(
        "--features",
        type=Path,
        help="JSON or YAML file with additional feature proposals",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit structured JSON log lines",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser


def resolve_formats(requested: list[str] | None) -> list[str]:
    if not requested:
        return ["markdown", "json"]
    if "all" in requested:
        return list(EXPORT_FORMATS)
    return list(dict.fromkeys(requested))


def load_config(args: argparse.Namespace, project_dir: Path) -> EngineConfig:
    config = EngineConfig.from_file(args.config or project_dir / DEFAULT_CONFIG_FILE)
    if args.team_size is not None:
        config.roadmap.team_size = args.team_size
    if args.threshold is not None:
        config.gaps.confidence_threshold = args.threshold
    if args.as_is:
        config.as_is = True
    return config


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)
    configure_logging(
        level=logging.DEBUG if args.verbose else logging.INFO,
        structured=args.json_logs,
    )

    project_dir = args.project.resolve()
    output_dir = args.output or project_dir / DEFAULT_OUTPUT_DIR

    try:
        config = load_config(args, project_dir)
        features = load_feature_proposals(args.features) if args.features else []
        result = ReconciliationPipeline(project_dir, config=config, features=features).run()
        written = RoadmapExporter().export_all(result.roadmap, output_dir, resolve_formats(args.formats))
    except SpecRoadmapError as e:
        log_exception(logger, f"Roadmap generation failed: {e.message}", e)
        return 1
    except KeyboardInterrupt:
        logger.warning("Roadmap generation interrupted")
        return 1

    for fmt, path in written.items():
        logger.info("Wrote %s: %s", fmt, path)
    if result.errors:
        logger.warning("%d documents or files were skipped; see the log above", len(result.errors))
    return 0


if __name__ == "__main__":
    sys.exit(main())
