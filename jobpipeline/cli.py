"""
Command Line Interface

    jobpipeline discover --keywords K --location L --total-jobs T [--start-from S]
    jobpipeline process [--limit N]
    jobpipeline scrape --keywords K --location L --total-jobs T
    jobpipeline clear-cache | warm-up | status
    jobpipeline forget JOB_ID [JOB_ID ...]

Exit codes: 0 success, 1 fatal pipeline error, 2 usage error, 130 interrupted.
"""

import argparse
import asyncio
import json
import sys
from typing import List, Optional

from pydantic import ValidationError

from jobpipeline import __version__
from jobpipeline.core.config import Settings, get_settings
from jobpipeline.core.exceptions import PipelineException
from jobpipeline.pipeline.runner import open_data_service, open_pipeline
from jobpipeline.utils.logger import configure_logging, log_error

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def _non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0, got {value}")
    return number


def _positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be > 0, got {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jobpipeline",
        description="LinkedIn job discovery and processing pipeline",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", help="Override LOG_LEVEL (DEBUG, INFO, WARNING, ERROR)")
    parser.add_argument("--debug", action="store_true", help="Human-readable console logs")
    parser.add_argument("--no-progress", action="store_true", help="Do not draw the progress line")

    subparsers = parser.add_subparsers(dest="command", required=True)

    discover = subparsers.add_parser("discover", help="Queue new job IDs from search results")
    discover.add_argument("--keywords", required=True, help="Search keywords")
    discover.add_argument("--location", required=True, help="Search location")
    discover.add_argument("--total-jobs", type=_positive_int, required=True, help="New jobs to queue")
    discover.add_argument(
        "--start-from", type=_non_negative_int, default=None,
        help="Result offset to start at (default: current queue size)",
    )

    process = subparsers.add_parser("process", help="Scrape and save queued jobs")
    process.add_argument(
        "--limit", type=_non_negative_int, default=0,
        help="Maximum jobs to process (0 = until the queue is empty)",
    )

    scrape = subparsers.add_parser("scrape", help="Discover then process in one session")
    scrape.add_argument("--keywords", required=True, help="Search keywords")
    scrape.add_argument("--location", required=True, help="Search location")
    scrape.add_argument("--total-jobs", type=_positive_int, required=True, help="Jobs to discover and process")

    subparsers.add_parser("clear-cache", help="Empty the queue and drop cached existence facts")
    subparsers.add_parser("warm-up", help="Preload existence facts from the backend")
    subparsers.add_parser("status", help="Show queue size and cache statistics")

    forget = subparsers.add_parser("forget", help="Drop cached existence facts so jobs can be rediscovered")
    forget.add_argument("job_ids", nargs="+", help="LinkedIn job IDs")

    return parser


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, default=str))


async def run_command(args: argparse.Namespace, settings: Settings) -> int:
    """Run one subcommand and return its exit code."""
    show_progress = not args.no_progress

    if args.command == "discover":
        async with open_pipeline(settings, show_progress=show_progress) as runner:
            result = await runner.discover(
                args.keywords, args.location, args.total_jobs, start_from=args.start_from
            )
        print(
            f"Discovery stopped ({result.stop_reason}): queued {result.queued} new jobs, "
            f"{result.known} already saved, {result.urls_seen} results seen over {result.pages} pages"
        )
        return EXIT_OK

    if args.command == "process":
        async with open_pipeline(settings, show_progress=show_progress) as runner:
            result = await runner.process(limit=args.limit)
        print(
            f"Processing stopped ({result.stop_reason}): {result.saved} saved, "
            f"{result.skipped} skipped, {result.failed} failed"
        )
        if result.rescrape_ids:
            print(f"Saved without a description (re-scrape later): {', '.join(result.rescrape_ids)}")
        return EXIT_OK

    if args.command == "scrape":
        async with open_pipeline(settings, show_progress=show_progress) as runner:
            discovery, processing = await runner.scrape(args.keywords, args.location, args.total_jobs)
        print(
            f"Queued {discovery.queued} jobs; {processing.saved} saved, "
            f"{processing.skipped} skipped, {processing.failed} failed"
        )
        return EXIT_OK

    if args.command == "clear-cache":
        async with open_data_service(settings, require_backend=False) as data_service:
            summary = await data_service.clear_cache()
        _print_json({"cleared": summary})
        return EXIT_OK

    if args.command == "warm-up":
        async with open_data_service(settings) as data_service:
            summary = await data_service.warm_up()
        _print_json({"warmed": summary})
        return EXIT_OK

    if args.command == "forget":
        async with open_data_service(settings, require_backend=False) as data_service:
            for identifier in args.job_ids:
                await data_service.forget_posting(identifier)
        _print_json({"forgotten": args.job_ids})
        return EXIT_OK

    if args.command == "status":
        async with open_data_service(settings, require_backend=False) as data_service:
            stats = await data_service.stats()
        _print_json(stats)
        return EXIT_OK

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Optional[List[str]] = None) -> None:
    """Console script entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = get_settings()
    except ValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        sys.exit(EXIT_FAILURE)

    configure_logging(
        level=args.log_level or settings.LOG_LEVEL,
        debug=args.debug or settings.DEBUG,
        log_file=settings.LOG_FILE,
    )

    try:
        exit_code = asyncio.run(run_command(args, settings))
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        sys.exit(EXIT_INTERRUPTED)
    except PipelineException as e:
        log_error(e, {"command": args.command})
        print(f"\nError: {e.message}", file=sys.stderr)
        sys.exit(EXIT_FAILURE)

    sys.exit(exit_code)
