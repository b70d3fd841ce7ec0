"""Command-line entrypoint - create projects, run pipelines, inspect storyboards."""

import argparse
import sys
from pathlib import Path
from typing import Any, Optional

from scriptboard.core.config import Settings, settings
from scriptboard.core.errors import ScriptboardError
from scriptboard.core.logging_config import get_logger, setup_logging
from scriptboard.models.schemas import PipelineResult
from scriptboard.services.container import ServiceContainer


def _log_result(logger: Any, result: PipelineResult) -> None:
    logger.info("=" * 60)
    if result.success:
        logger.info(f"✅ Project {result.project_id}: {result.status.value}")
        if result.segments_created:
            logger.info(f"Segments: {result.segments_created}")
        if result.quality_score:
            logger.info(f"Quality: {result.quality_score.overall} ({result.quality_score.level.value})")
        for item in result.asset_results:
            marker = "❌" if item.error else ("⚠️" if item.is_placeholder else "✅")
            logger.info(f"  {marker} Segment {item.segment_number}: {item.suggestions_found} suggestions")
    else:
        logger.error(f"❌ Project {result.project_id} failed ({result.reason}): {result.error}")
        if result.details:
            logger.error(f"Details: {result.details}")
    logger.info("=" * 60)


def _read_script(path: str) -> str:
    return Path(path).read_text(encoding="utf-8")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Scriptboard - script to storyboard pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--owner", type=str, default="local", help="Owner id (default: local)")
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create", help="Create a project from a script file")
    create.add_argument("--title", type=str, required=True, help="Project title")
    create.add_argument("--script-file", type=str, required=True, help="Path to the script text file")
    create.add_argument(
        "--voice",
        type=str,
        default="professional_narrator",
        choices=["professional_narrator", "energetic_host", "calm_educator"],
        help="Voice preset (default: professional_narrator)",
    )
    create.add_argument("--run", action="store_true", help="Run the pipeline right after creating the project")

    run = sub.add_parser("run", help="Run Pipeline A (and B) for a draft project")
    run.add_argument("project_id", type=str)

    optimize = sub.add_parser("auto-optimize", help="Rewrite a ready project's script to raise its quality score")
    optimize.add_argument("project_id", type=str)
    optimize.add_argument("--max-attempts", type=int, default=None, help="Attempt bound (default from settings)")

    summary = sub.add_parser("summary", help="Show a project's storyboard summary")
    summary.add_argument("project_id", type=str)

    sub.add_parser("clean-cache", help="Delete expired stock-asset and TTS cache entries")
    return parser


def main(argv: Optional[list[str]] = None, app_settings: Optional[Settings] = None) -> int:
    """Main entrypoint. Returns a process exit code."""
    args = build_parser().parse_args(argv)
    app_settings = app_settings or settings

    setup_logging(log_level=app_settings.log_level, log_file=app_settings.log_file)
    logger = get_logger(__name__, command=args.command)
    container = ServiceContainer.build(app_settings, logger)

    try:
        if args.command == "create":
            project = container.storyboard.create_project(
                args.owner, args.title, _read_script(args.script_file), args.voice
            )
            logger.info(f"✅ Created project {project.id} ({project.title})")
            if not args.run:
                return 0
            result = container.orchestrator.run_pipeline_a(project.id, args.owner)
            _log_result(logger, result)
            return 0 if result.success else 1

        if args.command == "run":
            result = container.orchestrator.run_pipeline_a(args.project_id, args.owner)
            _log_result(logger, result)
            return 0 if result.success else 1

        if args.command == "auto-optimize":
            result = container.orchestrator.auto_optimize(args.project_id, args.owner, args.max_attempts)
            _log_result(logger, result)
            return 0 if result.success else 1

        if args.command == "summary":
            summary = container.storyboard.storyboard_summary(args.project_id, args.owner)
            logger.info(f"Project {summary.project_id}: {summary.total_segments} segments, {summary.formatted_duration}")
            logger.info(
                f"  has_asset={summary.has_asset} needs_selection={summary.needs_selection} "
                f"placeholder={summary.placeholder} silent={summary.silent}"
            )
            logger.info(f"  Visual completion: {summary.visual_completion}%")
            if summary.can_render:
                logger.info("  ✅ Ready to render")
            else:
                logger.warning(f"  ❌ Cannot render: {summary.render_block_reason}")
            return 0

        if args.command == "clean-cache":
            removed = container.clean_caches()
            logger.info(f"Removed {removed['assets']} stock assets and {removed['tts']} TTS entries from cache")
            return 0

        return 1

    except ScriptboardError as e:
        logger.error(f"❌ {e.reason}: {e.message}")
        if e.details:
            logger.error(f"Details: {e.details}")
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 1
    except Exception as e:
        logger.exception(f"Command failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
