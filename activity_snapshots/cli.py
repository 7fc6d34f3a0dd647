import argparse
import logging
import sys
from collections.abc import Sequence

from activity_snapshots.core.errors import ActivitySnapshotError
from activity_snapshots.core.observability import configure_logging
from activity_snapshots.core.observability import init_sentry
from activity_snapshots.services.pipelines import PIPELINES
from activity_snapshots.services.pipelines import run_pipeline
from activity_snapshots.settings import Settings


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="activity-snapshots",
        description="Fetch activity data and publish it as static JSON snapshots.",
    )
    parser.add_argument(
        "sources",
        nargs="*",
        metavar="SOURCE",
        help=f"sources to refresh (default: all of {', '.join(PIPELINES)})",
    )
    parser.add_argument("--data-dir", help="output directory (overrides DATA_DIR)")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the selected pipelines; return 1 if any of them failed."""

    parser = build_parser()
    args = parser.parse_args(argv)
    unknown = [source for source in args.sources if source not in PIPELINES]
    if unknown:
        parser.error(f"unknown source(s): {', '.join(unknown)}")

    app_settings = Settings()
    if args.data_dir:
        app_settings = app_settings.model_copy(update={"data_dir": args.data_dir})

    configure_logging(app_settings)
    init_sentry(app_settings)

    failed: list[str] = []
    for source in args.sources or list(PIPELINES):
        try:
            written = run_pipeline(source, app_settings)
        except ActivitySnapshotError:
            logger.exception("%s pipeline failed", source)
            failed.append(source)
            continue
        logger.info("%s: saved %s", source, ", ".join(str(path) for path in written))

    if failed:
        logger.error("Failed sources: %s", ", ".join(failed))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
