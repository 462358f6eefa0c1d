"""Integration tests for the calendar classification API."""

import pytest
from httpx import AsyncClient

from app.classification.rules import CATEGORY_CHOICES, TREATMENT_STAGE_CHOICES


@pytest.fixture
async def events(seed_events, make_event):
    return await seed_events(
        make_event(1, summary="RETIRA ROXAIR"),
        make_event(2, summary="Feriado"),
        make_event(
            3,
            summary="Consulta",
            category="Consulta médica",
            amount_expected=30000,
            amount_paid=30000,
            attended=True,
            dosage_value=0.0,
        ),
        make_event(4, summary="Paciente no vino", category="Control médico"),
    )


class TestClassificationOptions:
    @pytest.mark.asyncio
    async def test_lists_choices(self, client: AsyncClient):
        response = await client.get("/api/v1/calendar/classification-options")

        assert response.status_code == 200
        data = response.json()
        assert data["categories"] == list(CATEGORY_CHOICES)
        assert data["treatmentStages"] == list(TREATMENT_STAGE_CHOICES)


class TestClassifyEvent:
    @pytest.mark.asyncio
    async def test_classify_roxair(self, client: AsyncClient, events, load_event):
        response = await client.post(
            "/api/v1/calendar/events/classify",
            json={
                "calendarId": "clinic",
                "eventId": "evt-1",
                "category": "roxair",
                "amountExpected": "",
                "amountPaid": "$50.000",
                "attended": True,
                "treatmentStage": "Mantención",
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["event"]["category"] == "Roxair"
        assert data["event"]["amountExpected"] == 150000
        assert data["event"]["amountPaid"] == 50000
        assert data["event"]["attended"] is True
        assert data["event"]["treatmentStage"] is None
        assert data["changedFields"] == ["category", "amountExpected", "amountPaid", "attended"]

        stored = await load_event("evt-1")
        assert stored.amount_paid == 50000

    @pytest.mark.asyncio
    async def test_numbers_accepted_for_amounts(self, client: AsyncClient, events):
        response = await client.post(
            "/api/v1/calendar/events/classify",
            json={"calendarId": "clinic", "eventId": "evt-3", "amountPaid": 10000},
        )

        assert response.status_code == 200
        assert response.json()["event"]["amountPaid"] == 10000
        assert response.json()["changedFields"] == ["amountPaid"]

    @pytest.mark.asyncio
    async def test_oversized_amount_keeps_stored_value(self, client: AsyncClient, events, load_event):
        before = await load_event("evt-3")

        response = await client.post(
            "/api/v1/calendar/events/classify",
            json={"calendarId": "clinic", "eventId": "evt-3", "amountExpected": "9" * 30},
        )

        assert response.status_code == 200
        assert response.json()["changedFields"] == []
        assert response.json()["event"]["amountExpected"] == before.amount_expected

    @pytest.mark.asyncio
    async def test_no_show_forces_attendance(self, client: AsyncClient, events):
        response = await client.post(
            "/api/v1/calendar/events/classify",
            json={"calendarId": "clinic", "eventId": "evt-4", "attended": True, "amountPaid": "20000"},
        )

        assert response.status_code == 200
        event = response.json()["event"]
        assert event["attended"] is False
        assert event["amountPaid"] == 0

    @pytest.mark.asyncio
    async def test_unknown_category_rejected(self, client: AsyncClient, events, load_event):
        response = await client.post(
            "/api/v1/calendar/events/classify",
            json={"calendarId": "clinic", "eventId": "evt-1", "category": "Peluquería"},
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "CLS_002"
        assert (await load_event("evt-1")).category is None

    @pytest.mark.asyncio
    async def test_unknown_event(self, client: AsyncClient, events):
        response = await client.post(
            "/api/v1/calendar/events/classify",
            json={"calendarId": "clinic", "eventId": "nope"},
        )

        assert response.status_code == 404
        assert response.json()["error_code"] == "EVT_001"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            {"calendarId": "", "eventId": "evt-1"},
            {"calendarId": "clinic", "eventId": "evt-1", "amountPaid": "9" * 51},
            {"calendarId": "clinic", "eventId": "evt-1", "amountPaid": True},
        ],
    )
    async def test_malformed_payload(self, client: AsyncClient, events, payload):
        response = await client.post("/api/v1/calendar/events/classify", json=payload)

        assert response.status_code == 400
        assert response.json()["error_code"] == "VAL_001"


class TestUnclassifiedEvents:
    @pytest.mark.asyncio
    async def test_ignored_events_are_dropped(self, client: AsyncClient, events):
        response = await client.get(
            "/api/v1/calendar/events/unclassified", params={"missingCategory": "true"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["totalCount"] == 2
        assert [e["eventId"] for e in data["events"]] == ["evt-1"]
        assert data["limit"] == 50
        assert data["offset"] == 0

    @pytest.mark.asyncio
    async def test_any_missing_field(self, client: AsyncClient, events):
        response = await client.get("/api/v1/calendar/events/unclassified")

        data = response.json()
        assert data["totalCount"] == 3
        assert [e["eventId"] for e in data["events"]] == ["evt-4", "evt-1"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("params", [{"limit": 0}, {"limit": 501}, {"offset": -1}, {"filterMode": "XOR"}])
    async def test_invalid_query(self, client: AsyncClient, params):
        response = await client.get("/api/v1/calendar/events/unclassified", params=params)

        assert response.status_code == 400
        assert response.json()["error_code"] == "VAL_001"


class TestReclassifyJobs:
    @pytest.mark.asyncio
    async def test_submit_and_poll(self, client: AsyncClient, job_engine, events, load_event):
        response = await client.post(
            "/api/v1/calendar/events/reclassify", json={"missingCategory": True}
        )

        assert response.status_code == 202
        submission = response.json()
        assert submission["totalEvents"] == 2

        await job_engine.wait(submission["jobId"])
        response = await client.get(f"/api/v1/calendar/events/jobs/{submission['jobId']}")

        assert response.status_code == 200
        job = response.json()["job"]
        assert job["status"] == "completed"
        assert job["progress"] == job["total"] == 2
        assert job["result"]["reclassified"] == 1
        assert job["result"]["fieldCounts"]["category"] == 1
        assert job["error"] is None
        assert (await load_event("evt-1")).category == "Roxair"
        assert (await load_event("evt-2")).category is None

    @pytest.mark.asyncio
    async def test_submit_without_body_uses_any_missing(self, client: AsyncClient, job_engine, events):
        response = await client.post("/api/v1/calendar/events/reclassify")

        assert response.status_code == 202
        assert response.json()["totalEvents"] == 3
        await job_engine.wait(response.json()["jobId"])

    @pytest.mark.asyncio
    async def test_reclassify_all(self, client: AsyncClient, job_engine, events):
        response = await client.post("/api/v1/calendar/events/reclassify-all")

        assert response.status_code == 202
        job_id = response.json()["jobId"]
        assert response.json()["totalEvents"] == 4

        await job_engine.wait(job_id)
        job = (await client.get(f"/api/v1/calendar/events/jobs/{job_id}")).json()["job"]
        assert job["type"] == "reclassify-all"
        assert job["status"] == "completed"

    @pytest.mark.asyncio
    async def test_invalid_filter_mode(self, client: AsyncClient, events):
        response = await client.post(
            "/api/v1/calendar/events/reclassify", json={"filterMode": "XOR"}
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_job(self, client: AsyncClient):
        response = await client.get("/api/v1/calendar/events/jobs/does-not-exist")

        assert response.status_code == 404
        assert response.json()["error_code"] == "JOB_001"
