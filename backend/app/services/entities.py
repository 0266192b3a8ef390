"""Entity registry: columns, de-dup keys and Crew payloads per import type."""
import logging
from datetime import datetime, timezone
from typing import Any

from app.core.config import Settings
from app.services.fields import normalize_phone, parse_decimal, parse_int, parse_level, parse_yes
from app.services.import_pipeline import EntityImport, RowContext
from app.services.validation import FieldSpec

logger = logging.getLogger(__name__)


def _or_none(value: str) -> str | None:
    return value or None


# ─── Employees & foremen ───

EMPLOYEE_FIELDS = (
    FieldSpec("name", "Name", ("Name First and Last", "Employee Name", "Full Name"), required=True),
    FieldSpec("external_id", "ID", ("Employee ID", "Employee Number"), required=True),
    FieldSpec("email", "Email", ("Email Address",)),
    FieldSpec("phone", "Phone", ("Cell Phone", "Cell Number", "Phone Number", "Mobile")),
    FieldSpec("pin", "PIN"),
    FieldSpec("foreman", "Foreman"),
    FieldSpec("tracking", "Tracking", ("GPS Tracking",)),
    FieldSpec("active", "Active"),
)


async def build_employee_payload(values: dict[str, str], ctx: RowContext) -> dict[str, Any]:
    return {
        "name": values["name"],
        "accounting_id": values["external_id"],
        "email": _or_none(values["email"]),
        "phone": normalize_phone(values["phone"], ctx.settings.CREW_PHONE_COUNTRY_CODE),
        "pin": _or_none(values["pin"]),
        "foreman": 1 if parse_yes(values["foreman"]) else 0,
        "tracking": 1 if parse_yes(values["tracking"]) else 0,
        "active": 1 if not values["active"] or parse_yes(values["active"]) else 0,
        "employee": 1,
        "type": "employee",
        "role": "user",
        "company_id": ctx.company_id,
    }


# ─── Staff ───

STAFF_FIELDS = (
    FieldSpec("name", "Name First and Last", ("Name", "Full Name"), required=True),
    FieldSpec("email", "Email", ("Email Address",), required=True),
    FieldSpec("password", "Password", required=True),
    FieldSpec("accounting_id", "Employee ID", ("ID", "Staff ID")),
    FieldSpec("phone", "Phone Number", ("Phone", "Mobile", "Cell Phone")),
    FieldSpec("time_clock", "Payroll", ("Time Clock", "TimeClock")),
    FieldSpec("scheduler", "Jobs", ("Scheduler", "Scheduling")),
    FieldSpec("users", "Users", ("Admin",)),
    FieldSpec("metrics", "Analysis", ("Metrics", "Reports")),
)


def check_password_length(values: dict[str, str], settings: Settings) -> str | None:
    minimum = settings.STAFF_PASSWORD_MIN_LENGTH
    if len(values.get("password", "")) < minimum:
        return f"Password must be at least {minimum} characters"
    return None


async def build_staff_payload(values: dict[str, str], ctx: RowContext) -> dict[str, Any]:
    # The "Users"/"Admin" column is accepted but ignored: imports only create regular staff.
    metrics_level = parse_level(values["metrics"])
    payload: dict[str, Any] = {
        "name": values["name"],
        "email": values["email"],
        "password": values["password"],
        "role": "user",
        "employee": 0,
        "active": 1,
        "time_clock_level": parse_level(values["time_clock"]),
        "scheduler_level": parse_level(values["scheduler"]),
        "metrics_level": metrics_level,
        "metrics_enabled": 1 if metrics_level > 0 else 0,
        "accounting_id": _or_none(values["accounting_id"]),
        "employee_id": None,
        "company_id": ctx.company_id,
        "type": "user",
        "is_super_admin": 0,
    }
    phone = normalize_phone(values["phone"], ctx.settings.CREW_PHONE_COUNTRY_CODE)
    if phone:
        payload["phone"] = phone
    return payload


# ─── Equipment ───

EQUIPMENT_FIELDS = (
    FieldSpec("name", "Equipment name", ("Equipment", "Name"), required=True),
    FieldSpec("serial_number", "Serial Number", ("Serial",)),
    FieldSpec("notes", "Notes"),
    FieldSpec("active", "Active"),
)


async def build_equipment_payload(values: dict[str, str], ctx: RowContext) -> dict[str, Any]:
    return {
        "name": values["name"],
        "serial_number": _or_none(values["serial_number"]),
        "notes": _or_none(values["notes"]),
        "active": 1 if not values["active"] or parse_yes(values["active"]) else 0,
        "company_id": ctx.company_id,
    }


# ─── Jobs ───

JOB_FIELDS = (
    FieldSpec("name", "Job Name", ("Name",), required=True),
    FieldSpec("number", "Job Number", ("Number",)),
    FieldSpec("address", "Address"),
    FieldSpec("city", "City"),
    FieldSpec("state", "State"),
    FieldSpec("zip", "Zip", ("Zip Code", "Postal Code")),
    FieldSpec("color", "Color"),
)


async def build_job_payload(values: dict[str, str], ctx: RowContext) -> dict[str, Any]:
    return {
        "company_id": ctx.company_id,
        "active": 1,
        "name": values["name"],
        "number": values["number"],
        "address": _or_none(values["address"]),
        "city": _or_none(values["city"]),
        "state": _or_none(values["state"]),
        "zip": _or_none(values["zip"]),
        "color": values["color"] or ctx.settings.CREW_DEFAULT_JOB_COLOR,
        "deleted_at": None,
    }


# ─── Tasks ───

TASK_FIELDS = (
    FieldSpec("name", "Task Name", ("Name",), required=True),
    FieldSpec("cost_code", "Cost Code"),
    FieldSpec("unit", "Unit"),
    FieldSpec("ot_exempt", "OT Exempt Task", ("OT Exempt",)),
    FieldSpec("estimated_hours", "Estimated Hours"),
    FieldSpec("job_id", "Job ID"),
)


async def build_task_payload(values: dict[str, str], ctx: RowContext) -> dict[str, Any]:
    hours = parse_decimal(values["estimated_hours"])
    return {
        "company_id": ctx.company_id,
        "job_id": parse_int(values["job_id"], ctx.settings.CREW_DEFAULT_JOB_ID),
        "name": values["name"],
        "cost_code": values["cost_code"],
        "unit": _or_none(values["unit"]),
        "estimated_hours": float(hours) if hours is not None else None,
        # exempt tasks don't count toward overtime
        "count_overtime": 0 if parse_yes(values["ot_exempt"]) else 1,
        "complete": 0,
        "active": 1,
    }


# ─── Customers ───

CUSTOMER_FIELDS = (
    FieldSpec("name", "Name First and Last", ("Name", "Customer Name"), required=True),
    FieldSpec("email", "Email", ("Email Address",)),
    FieldSpec("company", "Company", ("Company Name",)),
    FieldSpec("phone", "Cell Phone", ("Cell Number", "Phone", "Phone Number", "Mobile")),
    FieldSpec("role", "Role"),
)


async def _customer_company_id(name: str, ctx: RowContext) -> int | None:
    default = ctx.settings.CREW_DEFAULT_CUSTOMER_COMPANY_ID
    if not name or ctx.company_id is None:
        return default
    cache = ctx.batch.customer_companies
    key = name.strip().lower()
    if key not in cache:
        cache[key] = await ctx.batch.client.find_or_create_company_by_name(name, ctx.company_id)
        if cache[key] is None:
            logger.warning("No customer company for %r; using default %s", name, default)
    found = cache[key]
    return found if found is not None else default


async def build_customer_payload(values: dict[str, str], ctx: RowContext) -> dict[str, Any]:
    return {
        "name": values["name"],
        "company_id": ctx.company_id,
        "customer_company_id": await _customer_company_id(values["company"], ctx),
        "active": 1,
        "role": values["role"] or "Customer",
        "email": _or_none(values["email"]),
        "pin": None,
        "type": "customer",
        "phone_country_code": ctx.settings.CREW_PHONE_COUNTRY_CODE,
        "phone_number_id": None,
        "phone_number": normalize_phone(values["phone"], ctx.settings.CREW_PHONE_COUNTRY_CODE),
        "company": _or_none(values["company"]),
        "consented_to_sms_at": datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S"),
    }


# ─── Registry ───

ENTITIES: dict[str, EntityImport] = {
    e.key: e
    for e in (
        EntityImport(
            key="employees",
            label="Employees",
            endpoint="/api/users",
            fields=EMPLOYEE_FIELDS,
            dedup_fields=("name", "external_id"),
            build_payload=build_employee_payload,
            download_name="employees_and_foreman_template.csv",
            description=(
                "Employees and Foreman are people that can be scheduled to job events and can keep time.",
                "Foreman can also approve time for others.",
            ),
        ),
        EntityImport(
            key="staff",
            label="Staff",
            endpoint="/api/users",
            fields=STAFF_FIELDS,
            dedup_fields=("name", "email"),
            dedup_with_company=True,
            build_payload=build_staff_payload,
            checks=(check_password_length,),
            download_name="staff_template.csv",
            description=(
                "Staff are people with special access privileges.",
                "They can manage schedules, approve time, and more.",
            ),
        ),
        EntityImport(
            key="equipment",
            label="Equipment",
            endpoint="/api/equipment",
            fields=EQUIPMENT_FIELDS,
            dedup_fields=("name",),
            build_payload=build_equipment_payload,
            download_name="equipment_template.csv",
            description=(
                "Equipment is any machinery you want to schedule alongside your Employees, Foreman, and Staff.",
            ),
        ),
        EntityImport(
            key="jobs",
            label="Jobs",
            endpoint="/api/jobs",
            fields=JOB_FIELDS,
            dedup_fields=("name", "number"),
            build_payload=build_job_payload,
            download_name="jobs_template.csv",
            description=("Job sites you'll be working at.",),
        ),
        EntityImport(
            key="tasks",
            label="Tasks",
            endpoint="/api/default-tasks",
            fields=TASK_FIELDS,
            dedup_fields=("name",),
            build_payload=build_task_payload,
            download_name="tasks_template.csv",
            description=("Tasks assigned to jobs.",),
        ),
        EntityImport(
            key="customers",
            label="Customers",
            endpoint="/api/customers",
            fields=CUSTOMER_FIELDS,
            dedup_fields=("name", "email"),
            dedup_with_company=True,
            build_payload=build_customer_payload,
            download_name="customers_template.csv",
            description=("Customers can be linked to jobs for filtering.",),
        ),
    )
}


def get_entity(key: str) -> EntityImport | None:
    return ENTITIES.get(key)
