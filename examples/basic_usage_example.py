#!/usr/bin/env python3
"""
Basic usage examples for the vet-clinic package.

This example walks through a typical clinic day: opening the service on a
state store, stocking a vaccine, recording a vaccination whose due date comes
from the default protocols, confirming a reminder, and summarising the month's
accounting.
"""

import asyncio
import os
from datetime import date
from uuid import uuid4

from vet_clinic import (
    BusinessRuleException,
    ClinicService,
    InMemoryStateStore,
    PersistenceException,
    SqlStateStore,
    TreatmentKind,
    ValidationException,
)
from vet_clinic.models import SummaryPeriod
from vet_clinic.utils import EngineSettings, LoggingConfigurator


async def open_service() -> ClinicService:
    """Open the clinic service on SQL when a URL is configured, memory otherwise."""
    settings = EngineSettings.from_environment()
    LoggingConfigurator.configure_basic_logging(settings.log_level)

    if settings.database_url:
        store = await SqlStateStore.from_url(settings.database_url)
    else:
        store = InMemoryStateStore()

    return await ClinicService.open(store, settings=settings)


async def vaccination_example(service: ClinicService):
    """Example: Stock a vaccine and record a protocol-driven vaccination."""
    print("\n=== Vaccination Example ===")

    item = await service.add_stock_item(
        {
            "name": "Rage (Rabies)",
            "category": "vaccine",
            "current_stock": 10,
            "minimum_stock": 2,
            "purchase_price": "12.50",
        }
    )
    print(f"✓ Stock item created: {item.name} ({item.current_stock} in stock)")

    patient_id, owner_id = uuid4(), uuid4()
    result = await service.add_treatment(
        TreatmentKind.VACCINATION,
        {
            "patient_id": patient_id,
            "owner_id": owner_id,
            "patient_name": "Rex",
            "species": "Chien",
            "product_name": "Rage (Rabies)",
            "date_given": date(2024, 1, 15),
            "cost": "45.00",
            "veterinarian": "Dr. Martin",
        },
    )

    record = service.get_treatment(TreatmentKind.VACCINATION, result.primary_id)
    print(f"✓ Vaccination recorded, next due {record.next_due_date}")
    print(f"✓ Stock after administration: {service.get_stock_item(item.id).current_stock}")
    return record


async def reminder_example(service: ClinicService, record):
    """Example: Schedule and confirm the yearly booster."""
    print("\n=== Reminder Example ===")

    reminder = await service.schedule_reminder(
        TreatmentKind.VACCINATION, record.id, record.next_due_date
    )
    print(f"✓ Reminder scheduled for {reminder.next_due_date}")

    performed = await service.confirm_reminder(
        TreatmentKind.VACCINATION,
        reminder.id,
        {
            "date_performed": reminder.next_due_date,
            "performed_by": "Dr. Martin",
            "batch_number": "LOT-2025-01",
        },
    )
    print(f"✓ Booster performed on {performed.date_given}, next due {performed.next_due_date}")


async def accounting_example(service: ClinicService):
    """Example: Derive and summarise the month's accounting."""
    print("\n=== Accounting Example ===")

    summary = await service.generate_accounting_summary(
        SummaryPeriod.MONTHLY, date(2024, 1, 1), date(2024, 1, 31)
    )
    print(f"✓ {summary.new_entries} entries derived")
    print(f"✓ Revenue {summary.total_revenue}, expenses {summary.total_expenses}")
    print(f"✓ Net income {summary.net_income}")


async def error_handling_examples(service: ClinicService, record):
    """Example: The errors callers are expected to handle."""
    print("\n=== Error Handling Examples ===")

    try:
        await service.update_treatment(
            TreatmentKind.VACCINATION, record.id, {"status": "scheduled"}
        )
    except BusinessRuleException as e:
        print(f"✓ Rule enforced: {e.message}")

    try:
        await service.add_stock_item({"name": "", "category": "vaccine"})
    except ValidationException as e:
        print(f"✓ Validation error caught: {e.details.get('validation_errors')}")


async def main():
    """Run all basic usage examples."""
    print("🐾 Vet Clinic Package - Basic Usage Examples")
    print("=" * 60)

    service = await open_service()
    try:
        record = await vaccination_example(service)
        await reminder_example(service, record)
        await accounting_example(service)
        await error_handling_examples(service, record)
    except PersistenceException as e:
        print(f"⚠️  State store failed: {e}")
    finally:
        await service.close()

    print("\n" + "=" * 60)
    print("🎉 Basic usage examples completed!")


if __name__ == "__main__":
    print("Starting vet-clinic basic usage examples...")
    print("Set VET_CLINIC_DATABASE_URL to persist state in a database")
    print(f"Current database URL: {os.getenv('VET_CLINIC_DATABASE_URL', 'in-memory')}")
    print()

    asyncio.run(main())
