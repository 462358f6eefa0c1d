"""Integration tests for the background reclassification engine."""

import pytest

from app.classification.classifier import Classifier
from app.classification.rules import (
    INDUCTION_STAGE,
    MEDICAL_CONSULTATION,
    MEDICAL_CONTROL,
    ROXAIR,
    SUBCUTANEOUS_TREATMENT,
)
from app.jobs.engine import RECLASSIFY_ALL, ReclassifyJobEngine, build_bulk_inputs
from app.jobs.store import JobStore
from app.schemas.job import JobStatus, ReclassifyFilter


@pytest.fixture
async def events(seed_events, make_event):
    return await seed_events(
        make_event(1, summary="Clustoid 0,3 ml (25/50)"),
        make_event(2, summary="RETIRA ROXAIR"),
        make_event(
            3,
            summary="Control s/c",
            category=MEDICAL_CONSULTATION,
            amount_expected=30000,
            amount_paid=30000,
            attended=True,
        ),
        make_event(4, summary="Paciente no vino", category=MEDICAL_CONSULTATION, amount_paid=40000),
    )


@pytest.mark.asyncio
async def test_reclassify_missing_category(job_engine, events, load_event):
    submission = await job_engine.submit(ReclassifyFilter(missing_category=True))
    assert submission.total_events == 2

    job = await job_engine.wait(submission.job_id)

    assert job.status == JobStatus.COMPLETED
    assert job.progress == job.total == 2
    assert job.result.reclassified == 2
    assert job.result.total_checked == 2
    assert job.result.field_counts["category"] == 2
    assert job.result.field_counts["amountExpected"] == 2
    assert job.result.field_counts["treatmentStage"] == 1

    subcut = await load_event("evt-1")
    assert subcut.category == SUBCUTANEOUS_TREATMENT
    assert (subcut.amount_expected, subcut.amount_paid) == (50000, 25000)
    assert (subcut.dosage_value, subcut.dosage_unit) == (0.3, "ml")
    assert subcut.treatment_stage == INDUCTION_STAGE

    roxair = await load_event("evt-2")
    assert roxair.category == ROXAIR
    assert roxair.amount_expected == 150000

    untouched = await load_event("evt-3")
    assert untouched.category == MEDICAL_CONSULTATION


@pytest.mark.asyncio
async def test_stored_values_win_over_text(job_engine, events, load_event):
    submission = await job_engine.submit(ReclassifyFilter(missing_attended=True))
    await job_engine.wait(submission.job_id)

    no_show = await load_event("evt-4")
    assert no_show.category == MEDICAL_CONSULTATION
    assert no_show.attended is False
    assert no_show.amount_paid == 0


@pytest.mark.asyncio
async def test_second_run_changes_nothing(job_engine, events):
    first = await job_engine.submit(ReclassifyFilter())
    await job_engine.wait(first.job_id)

    second = await job_engine.submit(ReclassifyFilter())
    job = await job_engine.wait(second.job_id)

    assert job.status == JobStatus.COMPLETED
    assert job.result.reclassified == 0
    assert set(job.result.field_counts.values()) == {0}


@pytest.mark.asyncio
async def test_reclassify_all_recomputes_from_text(job_engine, events, load_event):
    submission = await job_engine.submit(job_type=RECLASSIFY_ALL)
    assert submission.total_events == 4

    job = await job_engine.wait(submission.job_id)
    assert job.type == RECLASSIFY_ALL
    assert job.status == JobStatus.COMPLETED

    control = await load_event("evt-3")
    assert control.category == MEDICAL_CONTROL
    assert (control.amount_expected, control.amount_paid) == (0, 0)
    assert control.attended is None


@pytest.mark.asyncio
async def test_empty_snapshot_completes_immediately(job_engine, events):
    empty = await job_engine.submit(ReclassifyFilter(missing_treatment_stage=True))
    job = await job_engine.wait(empty.job_id)
    assert empty.total_events == 0
    assert job.status == JobStatus.COMPLETED
    assert job.progress == job.total == 0


@pytest.mark.asyncio
async def test_status_is_pending_or_running_until_done(session_factory, events):
    store = JobStore()
    engine = ReclassifyJobEngine(session_factory, store, batch_size=1, progress_every=1)
    observed = []

    original_update = store.update_progress

    def recording_update(job_id, progress, message=None):
        original_update(job_id, progress, message)
        observed.append(store.get(job_id))

    store.update_progress = recording_update

    submission = await engine.submit(job_type=RECLASSIFY_ALL)
    assert engine.status(submission.job_id).status == JobStatus.PENDING
    job = await engine.wait(submission.job_id)

    assert [j.progress for j in observed] == [1, 2, 3]
    assert all(j.status == JobStatus.RUNNING and j.progress < j.total for j in observed)
    assert job.progress == job.total == 4


class ExplodingClassifier(Classifier):
    def classify(self, override, event):
        if "ROXAIR" in (event.summary or ""):
            raise RuntimeError("classifier exploded")
        return super().classify(override, event)


@pytest.mark.asyncio
async def test_failure_freezes_progress(session_factory, events, load_event):
    engine = ReclassifyJobEngine(
        session_factory, JobStore(), classifier=ExplodingClassifier(), batch_size=1, progress_every=1
    )

    submission = await engine.submit(ReclassifyFilter(missing_category=True))
    job = await engine.wait(submission.job_id)

    assert job.status == JobStatus.FAILED
    assert job.error == "classifier exploded"
    assert job.progress == 1
    assert job.result is None
    # Batches committed before the failure stay committed.
    assert (await load_event("evt-1")).category == SUBCUTANEOUS_TREATMENT


@pytest.mark.asyncio
async def test_failure_reports_events_committed_between_updates(session_factory, events, load_event):
    # Default stride: no progress update is published before the failure.
    engine = ReclassifyJobEngine(session_factory, JobStore(), classifier=ExplodingClassifier(), batch_size=1)

    submission = await engine.submit(job_type=RECLASSIFY_ALL)
    job = await engine.wait(submission.job_id)

    assert engine.progress_every > job.total
    assert job.status == JobStatus.FAILED
    assert (job.progress, job.total) == (1, 4)
    assert (await load_event("evt-1")).category == SUBCUTANEOUS_TREATMENT
    assert (await load_event("evt-3")).category == MEDICAL_CONSULTATION


@pytest.mark.asyncio
async def test_shutdown_fails_running_jobs(session_factory, events):
    engine = ReclassifyJobEngine(session_factory, JobStore(), batch_size=1)
    submission = await engine.submit(job_type=RECLASSIFY_ALL)

    await engine.shutdown()

    job = engine.status(submission.job_id)
    assert job.status == JobStatus.FAILED
    assert job.progress < job.total


@pytest.mark.asyncio
async def test_submit_rejects_unknown_job_type(job_engine):
    with pytest.raises(ValueError):
        await job_engine.submit(job_type="purge")


def test_build_bulk_inputs_fills_only_gaps(make_event):
    event = make_event(1, summary="Clustoid 0,3 ml (25/50)", amount_expected=60000)

    override, baseline = build_bulk_inputs(event, overwrite=False)

    assert override.amount_expected == "60000"
    assert override.amount_paid == "25000"
    assert override.category == SUBCUTANEOUS_TREATMENT
    assert baseline.amount_expected == 60000

    override, baseline = build_bulk_inputs(event, overwrite=True)
    assert override.amount_expected == "50000"
    assert baseline.amount_expected is None
