"""Command line entry point.

Usage:
    python -m app.cli reclassify [--missing-category ...] [--filter-mode AND] [--wait]
    python -m app.cli reclassify --all --wait
    python -m app.cli status JOB_ID
"""

import argparse
import asyncio
import logging
import sys

import httpx

from app.client.jobs import CalendarJobsClient
from app.client.poller import track_job
from app.config import settings
from app.core.exceptions import ClassificationError
from app.core.logging import setup_logging
from app.schemas.job import Job, JobStatus, ReclassifyFilter

logger = logging.getLogger(__name__)

FILTER_FLAGS = (
    "missing_category",
    "missing_amount_expected",
    "missing_amount_paid",
    "missing_amount",
    "missing_attended",
    "missing_dosage",
    "missing_treatment_stage",
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="app.cli", description="Calendar reclassification jobs")
    parser.add_argument("--base-url", default=settings.api_base_url, help="API base URL")
    parser.add_argument("--log-level", default="WARNING")
    commands = parser.add_subparsers(dest="command", required=True)

    reclassify = commands.add_parser("reclassify", help="Submit a reclassification job")
    for flag in FILTER_FLAGS:
        reclassify.add_argument(f"--{flag.replace('_', '-')}", dest=flag, action="store_true")
    reclassify.add_argument("--filter-mode", choices=("AND", "OR"), default="OR")
    reclassify.add_argument(
        "--all", dest="reclassify_all", action="store_true", help="Recompute every event from its text"
    )
    reclassify.add_argument("--wait", action="store_true", help="Poll until the job finishes")
    reclassify.add_argument("--poll-interval-ms", type=int, default=settings.poll_interval_ms)

    status = commands.add_parser("status", help="Show a job's status")
    status.add_argument("job_id")
    return parser


def format_job(job: Job) -> str:
    percent = round(100 * job.progress / job.total) if job.total else 0
    line = f"[{job.status.value}] {job.progress}/{job.total} ({percent}%)"
    if job.message:
        line += f" {job.message}"
    if job.error:
        line += f" error: {job.error}"
    return line


async def run_reclassify(client: CalendarJobsClient, args: argparse.Namespace) -> int:
    if args.reclassify_all:
        submission = await client.submit_reclassify_all()
    else:
        job_filter = ReclassifyFilter(
            filter_mode=args.filter_mode,
            **{flag: getattr(args, flag) for flag in FILTER_FLAGS},
        )
        submission = await client.submit_reclassify(job_filter)
    print(f"Job {submission.job_id} submitted ({submission.total_events} events)")

    if not args.wait:
        return 0

    job = await track_job(
        client.get_job_status,
        submission.job_id,
        on_progress=lambda current: print(format_job(current)),
        poll_interval_ms=args.poll_interval_ms,
    )
    if job is None:
        print(f"Job {submission.job_id} not found or expired", file=sys.stderr)
        return 1
    if job.result is not None:
        counts = ", ".join(f"{name}={count}" for name, count in job.result.field_counts.items() if count)
        print(f"Reclassified {job.result.reclassified}/{job.result.total_checked} {counts}".rstrip())
    return 0 if job.status == JobStatus.COMPLETED else 1


async def run_status(client: CalendarJobsClient, args: argparse.Namespace) -> int:
    job = await client.get_job_status(args.job_id)
    print(format_job(job))
    return 0


async def main_async(args: argparse.Namespace) -> int:
    async with CalendarJobsClient(args.base_url) as client:
        try:
            if args.command == "reclassify":
                return await run_reclassify(client, args)
            return await run_status(client, args)
        except ClassificationError as exc:
            print(f"{exc.error_code}: {exc.details}", file=sys.stderr)
            return 1
        except httpx.HTTPError as exc:
            print(f"Request failed: {exc}", file=sys.stderr)
            return 1


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)
    return asyncio.run(main_async(args))


if __name__ == "__main__":
    sys.exit(main())
