"""Tests for the row import pipeline, run against a fake Crew API."""
import httpx
import pytest

from app.core.exceptions import InputError, ResolutionError
from app.services.entities import ENTITIES
from app.services.import_pipeline import run_import

from conftest import FakeCrew


def _counts_partition(summary) -> bool:
    return summary.ok + summary.failed + summary.skipped_duplicates == summary.total


# ─── Batch-level behaviour ────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_empty_batch_is_rejected(fake_crew, test_settings):
    async with fake_crew.client() as client:
        with pytest.raises(InputError):
            await run_import(ENTITIES["jobs"], [], client, test_settings)
    assert fake_crew.requests == []


@pytest.mark.asyncio
async def test_too_many_rows_is_rejected(fake_crew, test_settings):
    test_settings.MAX_IMPORT_ROWS = 2
    rows = [{"Job Name": f"Job {i}"} for i in range(3)]
    async with fake_crew.client() as client:
        with pytest.raises(InputError):
            await run_import(ENTITIES["jobs"], rows, client, test_settings)


@pytest.mark.asyncio
async def test_company_resolved_once_per_batch(fake_crew, test_settings):
    rows = [{"Job Name": "Harbor"}, {"Job Name": "Ridge"}, {"Job Name": "Mill"}]
    async with fake_crew.client() as client:
        result = await run_import(ENTITIES["jobs"], rows, client, test_settings)

    assert len(fake_crew.calls("GET", "/api/users")) == 1
    assert result.summary.company_id_used == 855
    assert [p["company_id"] for p in fake_crew.posted("/api/jobs")] == [855, 855, 855]


@pytest.mark.asyncio
async def test_configured_company_id_skips_lookup(fake_crew, test_settings):
    test_settings.CREW_COMPANY_ID = 77
    async with fake_crew.client() as client:
        result = await run_import(ENTITIES["equipment"], [{"Equipment name": "Loader"}], client, test_settings)

    assert fake_crew.calls("GET", "/api/users") == []
    assert result.summary.company_id_used == 77
    assert fake_crew.posted("/api/equipment")[0]["company_id"] == 77


@pytest.mark.asyncio
async def test_row_company_override_applies_to_that_row_only(fake_crew, test_settings):
    rows = [{"Job Name": "Harbor", "Company ID": "900"}, {"Job Name": "Ridge"}]
    async with fake_crew.client() as client:
        await run_import(ENTITIES["jobs"], rows, client, test_settings)

    assert [p["company_id"] for p in fake_crew.posted("/api/jobs")] == [900, 855]


@pytest.mark.asyncio
async def test_unresolvable_company_aborts_before_any_post(test_settings):
    crew = FakeCrew(users=[])
    async with crew.client() as client:
        with pytest.raises(ResolutionError):
            await run_import(ENTITIES["tasks"], [{"Task Name": "Dig"}], client, test_settings)
    assert crew.calls("POST", "/api/default-tasks") == []


# ─── Row outcomes ─────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_missing_required_field_is_validation_failure(fake_crew, test_settings):
    rows = [{"Task Name": "Dig"}, {"Task Name": "   ", "Cost Code": "100"}, {"Cost Code": "200"}]
    async with fake_crew.client() as client:
        result = await run_import(ENTITIES["tasks"], rows, client, test_settings)

    statuses = [o.status for o in result.results]
    assert statuses == ["created", "validation_failed", "validation_failed"]
    assert result.results[1].missing_fields == ["Task Name"]
    assert result.results[1].error == "Missing required field(s): Task Name on line 3"
    assert 'CSV must include a column named "Task Name"' in result.results[2].error
    assert result.summary.ok == 1
    assert result.summary.validation_errors == 2
    assert len(fake_crew.posted("/api/default-tasks")) == 1
    assert _counts_partition(result.summary)


@pytest.mark.asyncio
async def test_repeated_name_is_skipped_not_failed(fake_crew, test_settings):
    rows = [{"Name": "A"}, {"Name": "A"}]
    async with fake_crew.client() as client:
        result = await run_import(ENTITIES["equipment"], rows, client, test_settings)

    assert result.summary.ok <= 1
    assert result.summary.skipped_duplicates >= 1
    assert result.results[1].status == "skipped_duplicate"
    assert result.results[1].reason == "Duplicate in upload (same as line 2)"
    assert len(fake_crew.posted("/api/equipment")) == 1


@pytest.mark.asyncio
async def test_duplicate_after_failed_post_is_still_skipped(fake_crew, test_settings):
    fake_crew.post_rules.append(lambda path, body: httpx.Response(500, json={"message": "boom"}))
    rows = [{"Task Name": "Dig"}, {"Task Name": "dig"}]
    async with fake_crew.client() as client:
        result = await run_import(ENTITIES["tasks"], rows, client, test_settings)

    assert [o.status for o in result.results] == ["upstream_error", "skipped_duplicate"]
    assert result.summary.failed == 1
    assert result.summary.skipped_duplicates == 1


@pytest.mark.asyncio
async def test_upstream_422_reported_with_validation_hint(fake_crew, test_settings):
    fake_crew.post_rules.append(lambda path, body: httpx.Response(422, json={"message": "Unprocessable Entity"}))
    async with fake_crew.client() as client:
        result = await run_import(ENTITIES["tasks"], [{"Task Name": "Dig"}], client, test_settings)

    outcome = result.results[0]
    assert outcome.status == "upstream_error"
    assert outcome.status_code == 422
    assert outcome.category == "validation"
    assert outcome.error == "Row 2: HTTP 422: Unprocessable Entity"
    assert "One or more fields failed validation" in result.message
    assert "Request was rejected by the server" not in result.message


@pytest.mark.asyncio
async def test_transport_failure_is_isolated_to_its_row(fake_crew, test_settings):
    def flaky(path, body):
        if body.get("name") == "Ridge":
            raise httpx.ReadTimeout("timed out")
        return None

    fake_crew.post_rules.append(flaky)
    rows = [{"Job Name": "Harbor"}, {"Job Name": "Ridge"}, {"Job Name": "Mill"}]
    async with fake_crew.client() as client:
        result = await run_import(ENTITIES["jobs"], rows, client, test_settings)

    assert [o.status for o in result.results] == ["created", "upstream_error", "created"]
    assert result.results[1].category == "transport"
    assert result.results[1].error.startswith("Row 3: Request failed")
    assert result.summary.ok == 2
    assert result.summary.failed == 1


@pytest.mark.asyncio
async def test_mixed_batch_counts_partition_total(fake_crew, test_settings):
    fake_crew.post_rules.append(
        lambda path, body: httpx.Response(403, json={"message": "Forbidden"}) if body["name"] == "Locked" else None
    )
    rows = [
        {"Job Name": "Harbor", "Job Number": "1"},
        {"Job Name": "Harbor", "Job Number": "1"},
        {"Job Name": "Harbor", "Job Number": "2"},
        {"Job Name": ""},
        {"Job Name": "Locked"},
    ]
    async with fake_crew.client() as client:
        result = await run_import(ENTITIES["jobs"], rows, client, test_settings)

    summary = result.summary
    assert (summary.total, summary.ok, summary.failed, summary.validation_errors, summary.skipped_duplicates) == (
        5, 2, 2, 1, 1,
    )
    assert _counts_partition(summary)
    assert [o.line for o in result.results] == [2, 3, 4, 5, 6]
    assert result.message.startswith("Jobs: Imported with issues (created 2, failed 2, validation 1, dupes skipped 1)")


@pytest.mark.asyncio
async def test_all_created_message(fake_crew, test_settings):
    async with fake_crew.client() as client:
        result = await run_import(ENTITIES["jobs"], [{"Job Name": "Harbor"}], client, test_settings)
    assert result.message == "Jobs: Success, created 1."
    assert result.results[0].upstream_response["data"]["name"] == "Harbor"


# ─── Entity payloads ──────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_staff_rules_and_payload(fake_crew, test_settings):
    rows = [
        {
            "Name First and Last": "Ana Ruiz",
            "Email": "Ana@Example.com",
            "Password": "secret99",
            "Employee ID": "S-1",
            "Phone Number": "555 010 0100",
            "Payroll": "yes",
            "Jobs": "2",
            "Analysis": "",
            "Users": "yes",
        },
        {"Name First and Last": "Ben Ode", "Email": "ben@example.com", "Password": "123"},
        {"Name First and Last": "ana ruiz", "Email": "ana@example.com", "Password": "another1"},
    ]
    async with fake_crew.client() as client:
        result = await run_import(ENTITIES["staff"], rows, client, test_settings)

    assert [o.status for o in result.results] == ["created", "validation_failed", "skipped_duplicate"]
    assert result.results[1].error == "Password must be at least 6 characters on line 3"

    payload = fake_crew.posted("/api/users")[0]
    assert payload["role"] == "user"
    assert payload["is_super_admin"] == 0
    assert payload["employee"] == 0
    assert payload["accounting_id"] == "S-1"
    assert payload["phone"] == "+15550100100"
    assert (payload["time_clock_level"], payload["scheduler_level"], payload["metrics_level"]) == (1, 2, 0)
    assert payload["metrics_enabled"] == 0
    assert payload["company_id"] == 855


@pytest.mark.asyncio
async def test_staff_duplicate_email_from_upstream(fake_crew, test_settings):
    fake_crew.post_rules.append(
        lambda path, body: httpx.Response(
            500,
            json={"message": "SQLSTATE[23000]: Duplicate entry 'ana@example.com' for key 'users.users_email_unique'"},
        )
    )
    rows = [{"Name First and Last": "Ana Ruiz", "Email": "ana@example.com", "Password": "secret99"}]
    async with fake_crew.client() as client:
        result = await run_import(ENTITIES["staff"], rows, client, test_settings)

    outcome = result.results[0]
    assert outcome.category == "duplicate_email"
    assert outcome.error == 'Duplicate email: "ana@example.com" already exists in the system. Skipped row 2.'


@pytest.mark.asyncio
async def test_employee_payload(fake_crew, test_settings):
    rows = [{"Employee Name": "Cruz Vega", "Employee ID": "E-7", "Cell Phone": "(555) 222-3333", "Foreman": "x"}]
    async with fake_crew.client() as client:
        await run_import(ENTITIES["employees"], rows, client, test_settings)

    payload = fake_crew.posted("/api/users")[0]
    assert payload["name"] == "Cruz Vega"
    assert payload["accounting_id"] == "E-7"
    assert payload["phone"] == "+15552223333"
    assert payload["foreman"] == 1
    assert payload["tracking"] == 0
    assert payload["active"] == 1
    assert payload["employee"] == 1


@pytest.mark.asyncio
async def test_task_payload_defaults(fake_crew, test_settings):
    rows = [
        {"TASK_NAME": "Pour", "Cost Code": "03-300", "OT Exempt Task": "Yes", "Estimated Hours": "7.5"},
        {"task name": "Strip", "Job ID": "12"},
    ]
    async with fake_crew.client() as client:
        await run_import(ENTITIES["tasks"], rows, client, test_settings)

    first, second = fake_crew.posted("/api/default-tasks")
    assert first["name"] == "Pour"
    assert first["count_overtime"] == 0
    assert first["estimated_hours"] == 7.5
    assert first["job_id"] == 45151
    assert second["count_overtime"] == 1
    assert second["job_id"] == 12
    assert second["estimated_hours"] is None


@pytest.mark.asyncio
async def test_customer_company_looked_up_once_per_name(fake_crew, test_settings):
    fake_crew.listings["/api/customer-companies"] = [{"id": 436, "name": "Acme"}]
    rows = [
        {"Name First and Last": "Dee Park", "Company": "Acme", "Cell Phone": "555-444-1212"},
        {"Name First and Last": "Eli Moss", "Company": "ACME"},
        {"Name First and Last": "Fay Lin"},
    ]
    async with fake_crew.client() as client:
        result = await run_import(ENTITIES["customers"], rows, client, test_settings)

    assert result.summary.ok == 3
    payloads = fake_crew.posted("/api/customers")
    assert [p["customer_company_id"] for p in payloads] == [436, 436, None]
    assert payloads[0]["phone_number"] == "+15554441212"
    assert payloads[0]["role"] == "Customer"
    assert payloads[0]["type"] == "customer"
    assert len(fake_crew.calls("GET", "/api/customer-companies")) == 1


@pytest.mark.asyncio
async def test_customers_dedup_includes_company(fake_crew, test_settings):
    fake_crew.listings["/api/customer-companies"] = [{"id": 1, "name": "Acme"}, {"id": 2, "name": "Birch"}]
    rows = [
        {"Name": "Dee Park", "Email": "dee@example.com", "Company": "Acme"},
        {"Name": "Dee Park", "Email": "dee@example.com", "Company": "Birch"},
        {"Name": "dee park", "Email": "DEE@example.com", "Company": "acme"},
    ]
    async with fake_crew.client() as client:
        result = await run_import(ENTITIES["customers"], rows, client, test_settings)

    assert [o.status for o in result.results] == ["created", "created", "skipped_duplicate"]


@pytest.mark.asyncio
async def test_null_company_error_hint(fake_crew, test_settings):
    fake_crew.post_rules.append(
        lambda path, body: httpx.Response(500, json={"message": "Argument 2 must be of type App\\Company, null given"})
    )
    async with fake_crew.client() as client:
        result = await run_import(ENTITIES["equipment"], [{"Equipment name": "Loader"}], client, test_settings)

    assert result.results[0].category == "null_company"
    assert "Set a company context" in result.message
    assert "855" in result.message


@pytest.mark.asyncio
async def test_non_numeric_company_ids_do_not_abort_the_batch(fake_crew, test_settings):
    for endpoint in ("/api/customer-companies", "/api/companies"):
        fake_crew.listings[endpoint] = [{"id": "c-uuid-1", "name": "Acme"}]
    fake_crew.post_rules.append(
        lambda path, body: httpx.Response(201, json={"data": {"id": "c-uuid-2"}}) if "companies" in path else None
    )
    rows = [
        {"Name First and Last": "Fay Lin"},
        {"Name First and Last": "Dee Park", "Company": "Acme"},
        {"Name First and Last": "Eli Moss"},
    ]
    async with fake_crew.client() as client:
        result = await run_import(ENTITIES["customers"], rows, client, test_settings)

    assert result.summary.ok == 3
    assert [p["customer_company_id"] for p in fake_crew.posted("/api/customers")] == [None, None, None]
