"""Tests for the reclassification command line."""

import json

import httpx
import pytest

from app.cli import build_parser, format_job, run_reclassify
from app.client.jobs import CalendarJobsClient
from app.schemas.job import Job, JobStatus


def test_parser_maps_filter_flags():
    args = build_parser().parse_args(
        ["reclassify", "--missing-category", "--missing-dosage", "--filter-mode", "AND", "--wait"]
    )

    assert args.command == "reclassify"
    assert args.missing_category is True
    assert args.missing_dosage is True
    assert args.missing_attended is False
    assert args.filter_mode == "AND"
    assert args.wait is True
    assert args.reclassify_all is False


def test_format_job():
    job = Job(id="j", type="reclassify", status=JobStatus.RUNNING, progress=1, total=4, message="Analizando 1/4 eventos...")
    assert format_job(job) == "[running] 1/4 (25%) Analizando 1/4 eventos..."

    empty = Job(id="j", type="reclassify", status=JobStatus.COMPLETED, progress=0, total=0)
    assert format_job(empty) == "[completed] 0/0 (0%)"


@pytest.mark.asyncio
async def test_reclassify_and_wait(capsys):
    polls = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            assert json.loads(request.content)["missingCategory"] is True
            return httpx.Response(202, json={"jobId": "job-1", "totalEvents": 2})
        polls.append(request)
        status = "running" if len(polls) == 1 else "completed"
        progress = 1 if len(polls) == 1 else 2
        result = {"reclassified": 2, "totalChecked": 2, "fieldCounts": {"category": 2}}
        return httpx.Response(
            200,
            json={
                "job": {
                    "id": "job-1",
                    "type": "reclassify",
                    "status": status,
                    "progress": progress,
                    "total": 2,
                    "result": result if status == "completed" else None,
                }
            },
        )

    args = build_parser().parse_args(
        ["reclassify", "--missing-category", "--wait", "--poll-interval-ms", "0"]
    )
    async with CalendarJobsClient("http://api.test", transport=httpx.MockTransport(handler)) as client:
        exit_code = await run_reclassify(client, args)

    out = capsys.readouterr().out
    assert exit_code == 0
    assert "Job job-1 submitted (2 events)" in out
    assert "[running] 1/2 (50%)" in out
    assert "Reclassified 2/2 category=2" in out
