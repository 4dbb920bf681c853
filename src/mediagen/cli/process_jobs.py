"""CLI command for running generation jobs outside the HTTP worker route.

Usage:
    python -m mediagen.cli.process_jobs [OPTIONS]

Examples:
    # Drain the oldest runnable job
    python -m mediagen.cli.process_jobs

    # Drive one job with 4 variations per invocation, 2 at a time
    python -m mediagen.cli.process_jobs --job-id 3f1c... --batch 4 --parallel 2

    # Drain up to 5 jobs with a 2 minute budget each
    python -m mediagen.cli.process_jobs --jobs 5 --budget 120000

    # Verbose logging
    python -m mediagen.cli.process_jobs -v
"""

import asyncio
import sys
from argparse import ArgumentParser, Namespace
from uuid import UUID

import structlog

from mediagen.core.config import Settings, configure_logging
from mediagen.core.database import setup_db_session
from mediagen.services.exceptions import JobNotFoundError, ServiceError
from mediagen.uow import create_uow_factory
from mediagen.workers.generation_worker import build_collaborators, trigger_generation

logger = structlog.get_logger()


def parse_args(argv: list[str] | None = None) -> Namespace:
    """Parse command-line arguments."""
    parser = ArgumentParser(
        description="Run one bounded invocation of pending generation jobs",
        epilog="Re-run until every job reaches completed, failed or cancelled",
    )

    parser.add_argument("--job-id", type=UUID, help="Process only this job")
    parser.add_argument("--batch", type=int, help="Variations attempted per job")
    parser.add_argument("--parallel", type=int, help="Concurrent variations per job")
    parser.add_argument("--budget", type=int, help="Time budget per job in milliseconds")
    parser.add_argument(
        "--jobs",
        type=int,
        help="Jobs to pick up when draining (default: GENERATION_JOB_BATCH_SIZE)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging (DEBUG level)",
    )

    return parser.parse_args(argv)


async def async_main(argv: list[str] | None = None) -> int:
    """Main CLI entry point (async).

    Returns:
        Exit code: 0 (all jobs ran), 1 (error), 2 (some jobs raised)
    """
    args = parse_args(argv)

    settings = Settings()  # type: ignore[call-arg]
    if args.verbose:
        settings.log_level = "DEBUG"
    configure_logging(settings)

    logger.info(
        "cli.started",
        job_id=str(args.job_id) if args.job_id else None,
        batch=args.batch,
        parallel=args.parallel,
        budget=args.budget,
        jobs=args.jobs,
    )

    session_factory = setup_db_session(settings.database_url, settings.db_pool_size)
    uow_factory = create_uow_factory(session_factory)

    try:
        drained = await trigger_generation(
            settings,
            uow_factory,
            build_collaborators(settings, uow_factory),
            job_id=args.job_id,
            batch_size=args.batch,
            parallelism=args.parallel,
            time_budget_ms=args.budget,
            job_limit=args.jobs,
        )
    except JobNotFoundError as e:
        logger.error("cli.job_not_found", error=str(e))
        print(f"\nError: {e}", file=sys.stderr)
        return 1
    except ServiceError as e:
        logger.error("cli.service_error", error=str(e), error_type=type(e).__name__)
        print(f"\nError: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        logger.info("cli.interrupted")
        print("\nProcessing interrupted by user", file=sys.stderr)
        return 130

    print("\n" + "=" * 60)
    print("Generation Summary")
    print("=" * 60)
    print(f"Jobs processed: {drained.processed}")
    for result in drained.results:
        print(
            f"  - {result['job_id']}: {result['status']} "
            f"(+{result['processed']} this run, "
            f"{result['completed']} completed, {result['failed']} failed)"
        )
    if drained.errors:
        print(f"\nErrors encountered: {len(drained.errors)}")
        for error in drained.errors[:5]:
            print(f"  - {error['job_id']}: {error['error']}")
    print("=" * 60 + "\n")

    if drained.errors:
        logger.warning("cli.partial_success", errors=len(drained.errors))
        return 2
    logger.info("cli.success", processed=drained.processed)
    return 0


def main() -> None:
    """Synchronous entry point for CLI."""
    sys.exit(asyncio.run(async_main()))


if __name__ == "__main__":
    main()
