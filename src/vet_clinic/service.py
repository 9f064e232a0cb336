"""
Clinic service.

:class:`ClinicService` owns the whole clinic state and is the only way to
change it. Each mutation works on a deep copy of the current
:class:`ClinicState`, writes every namespace through to the state store in
one ``save_many`` call, and only then swaps the copy in. A failed write
leaves the service exactly as it was before the call.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from itertools import chain
from typing import (
    Any,
    AsyncGenerator,
    Dict,
    List,
    Optional,
    Sequence,
    Type,
    TypeVar,
    Union,
)
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, ValidationError

from .catalog import default_antiparasitic_protocols, default_vaccination_protocols
from .engine import (
    StockLedger,
    build_confirmation,
    build_summary,
    cascade_delete,
    chain_root,
    consultation_events,
    derive_entries,
    expand_protocol,
    find_record,
    overdue_records,
    prescription_events,
    records_by_patient,
    records_by_status,
    resolve_due_date,
    stock_alerts,
    stock_purchase_events,
    sweep_statuses,
    treatment_events,
    upcoming_records,
    validate_chain_link,
)
from .exceptions import (
    BusinessRuleException,
    PersistenceException,
    RecordNotFoundException,
    SchemaValidationException,
    TransactionException,
    ValidationException,
    format_validation_errors,
)
from .models.accounting import EntryCategory, SummaryPeriod
from .models.stock import PRESCRIPTION_REASON, MovementType, StockCategory
from .models.treatment import TreatmentKind, TreatmentStatus
from .schemas.accounting import (
    AUTOMATIC_IDENTITY_FIELDS,
    AccountingEntry,
    AccountingEntryCreate,
    AccountingEntryUpdate,
    AccountingSummary,
)
from .schemas.clinical import (
    Consultation,
    ConsultationCreate,
    ConsultationUpdate,
    Prescription,
    PrescriptionCreate,
    PrescriptionMedication,
    PrescriptionUpdate,
)
from .schemas.protocol import Protocol, ProtocolCreate, ProtocolUpdate
from .schemas.stock import (
    StockAlert,
    StockItem,
    StockItemCreate,
    StockItemUpdate,
    StockMovement,
    StockMovementCreate,
)
from .schemas.treatment import (
    NewTreatment,
    ReminderConfirmation,
    ReminderTreatment,
    TreatmentCreate,
    TreatmentPlanResult,
    TreatmentRecord,
    TreatmentRecordBase,
    TreatmentUpdate,
)
from .store.base import StateStore
from .utils.config import (
    NORMALIZED_PROTOCOL_MATCHING,
    EngineSettings,
    FeatureFlagManager,
    get_feature_flag_manager,
)
from .utils.datetime_utils import Clock, make_clock

logger = logging.getLogger(__name__)

NAMESPACES = (
    "vaccinations",
    "antiparasitics",
    "vaccination_protocols",
    "antiparasitic_protocols",
    "stock_items",
    "stock_movements",
    "accounting_entries",
    "consultations",
    "prescriptions",
)

PROTOCOL_NAMESPACES = ("vaccination_protocols", "antiparasitic_protocols")

ADJUSTMENT_REASON = "Ajustement manuel"

M = TypeVar("M", bound=BaseModel)


class ClinicState(BaseModel):
    """Every collection the clinic service owns, one field per namespace."""

    vaccinations: List[TreatmentRecord] = Field(default_factory=list)
    antiparasitics: List[TreatmentRecord] = Field(default_factory=list)
    vaccination_protocols: List[Protocol] = Field(default_factory=list)
    antiparasitic_protocols: List[Protocol] = Field(default_factory=list)
    stock_items: List[StockItem] = Field(default_factory=list)
    stock_movements: List[StockMovement] = Field(default_factory=list)
    accounting_entries: List[AccountingEntry] = Field(default_factory=list)
    consultations: List[Consultation] = Field(default_factory=list)
    prescriptions: List[Prescription] = Field(default_factory=list)

    def treatments(self, kind: TreatmentKind) -> List[TreatmentRecordBase]:
        if kind is TreatmentKind.VACCINATION:
            return self.vaccinations
        return self.antiparasitics

    def set_treatments(
        self, kind: TreatmentKind, records: List[TreatmentRecordBase]
    ) -> None:
        if kind is TreatmentKind.VACCINATION:
            self.vaccinations = records
        else:
            self.antiparasitics = records

    def protocols(self, kind: TreatmentKind) -> List[Protocol]:
        if kind is TreatmentKind.VACCINATION:
            return self.vaccination_protocols
        return self.antiparasitic_protocols

    def set_protocols(self, kind: TreatmentKind, protocols: List[Protocol]) -> None:
        if kind is TreatmentKind.VACCINATION:
            self.vaccination_protocols = protocols
        else:
            self.antiparasitic_protocols = protocols

    def ledger(self) -> StockLedger:
        """Stock ledger working directly on this state's lists."""
        return StockLedger(self.stock_items, self.stock_movements)


def _default_catalog(namespace: str) -> List[Protocol]:
    if namespace == "vaccination_protocols":
        return default_vaccination_protocols()
    return default_antiparasitic_protocols()


def _parse(schema: Type[M], data: Union[M, Dict[str, Any]]) -> M:
    """Validate a request payload, turning pydantic errors into our own."""
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data)
    except ValidationError as e:
        raise SchemaValidationException(
            f"Invalid {schema.__name__} payload",
            schema_name=schema.__name__,
            validation_errors=format_validation_errors(e.errors()),
        )


def _revalidate(record: M, changes: Dict[str, Any]) -> M:
    """Apply ``changes`` to ``record`` and run its validators again."""
    merged = {**record.model_dump(), **changes}
    try:
        return type(record).model_validate(merged)
    except ValidationError as e:
        raise SchemaValidationException(
            f"Invalid {type(record).__name__} update",
            schema_name=type(record).__name__,
            validation_errors=format_validation_errors(e.errors()),
        )


def _find(records: Sequence[M], record_id: UUID, label: str) -> M:
    for record in records:
        if record.id == record_id:
            return record
    raise RecordNotFoundException(label, record_id)


def _replace(records: List[M], updated: M) -> None:
    for index, record in enumerate(records):
        if record.id == updated.id:
            records[index] = updated
            return
    raise RecordNotFoundException(type(updated).__name__, updated.id)


class ClinicService:
    """
    Single owner of the clinic's treatment, inventory and accounting state.

    Mutations are coroutines serialised by a lock. Queries are plain methods
    reading the last committed state.

    Example:
        store = InMemoryStateStore()
        service = await ClinicService.open(store)
        result = await service.add_treatment(
            TreatmentKind.VACCINATION,
            {"patient_id": pet_id, "owner_id": owner_id, "species": "Chien",
             "product_name": "Rage (Rabies)", "date_given": "2024-01-15"},
        )
    """

    def __init__(
        self,
        store: StateStore,
        settings: Optional[EngineSettings] = None,
        clock: Optional[Clock] = None,
        feature_flags: Optional[FeatureFlagManager] = None,
    ):
        self.store = store
        self.settings = settings or EngineSettings()
        self.clock = clock or make_clock(self.settings.timezone)
        self.feature_flags = feature_flags or get_feature_flag_manager()
        self._state = ClinicState()
        self._lock = asyncio.Lock()

    @classmethod
    async def open(
        cls,
        store: StateStore,
        settings: Optional[EngineSettings] = None,
        clock: Optional[Clock] = None,
        feature_flags: Optional[FeatureFlagManager] = None,
    ) -> "ClinicService":
        """Create a service and load its state from ``store``."""
        service = cls(store, settings, clock, feature_flags)
        await service.load()
        return service

    @property
    def state(self) -> ClinicState:
        return self._state

    @property
    def normalized_matching(self) -> bool:
        return self.feature_flags.is_enabled(NORMALIZED_PROTOCOL_MATCHING)

    def today(self) -> date:
        return self.clock()

    # State loading and persistence

    async def load(self) -> None:
        """
        Read every namespace from the store.

        Absent protocol catalogs are seeded from the defaults when
        ``seed_protocols`` is on, and the seed is written back.

        Raises:
            SchemaValidationException: If a stored collection is malformed
            PersistenceException: If the store cannot be read
        """
        raw: Dict[str, Any] = {}
        seeded: List[str] = []
        for namespace in NAMESPACES:
            payload = await self.store.load(self.settings.namespace_key(namespace))
            if payload is None:
                if namespace in PROTOCOL_NAMESPACES and self.settings.seed_protocols:
                    raw[namespace] = _default_catalog(namespace)
                    seeded.append(namespace)
                continue
            raw[namespace] = payload

        try:
            state = ClinicState.model_validate(raw)
        except ValidationError as e:
            raise SchemaValidationException(
                "Stored clinic state is malformed",
                schema_name="ClinicState",
                validation_errors=format_validation_errors(e.errors()),
            )

        if seeded:
            logger.info(f"Seeding default protocol catalogs: {', '.join(seeded)}")
            await self.store.save_many(
                {
                    self.settings.namespace_key(namespace): payload
                    for namespace, payload in state.model_dump(
                        mode="json", include=set(seeded)
                    ).items()
                }
            )

        self._state = state
        logger.info(
            "Clinic state loaded",
            extra={
                "vaccinations": len(state.vaccinations),
                "antiparasitics": len(state.antiparasitics),
                "stock_items": len(state.stock_items),
            },
        )

    def _serialize(self, state: ClinicState) -> Dict[str, List[Any]]:
        return {
            self.settings.namespace_key(namespace): payload
            for namespace, payload in state.model_dump(mode="json").items()
        }

    @asynccontextmanager
    async def _unit_of_work(self, operation: str) -> AsyncGenerator[ClinicState, None]:
        """
        Stage a mutation on a copy of the state and commit it to the store.

        Example:
            async with self._unit_of_work("add_stock_item") as state:
                state.stock_items.append(item)
                # Written through and swapped in on exit
        """
        async with self._lock:
            staged = self._state.model_copy(deep=True)
            yield staged

            try:
                await self.store.save_many(self._serialize(staged))
            except PersistenceException as e:
                logger.error(
                    f"State store rejected '{operation}': {e.message}",
                    extra={"exception_data": e.to_dict()},
                )
                raise
            except Exception as e:
                logger.error(f"Write-through failed during '{operation}': {e}")
                raise TransactionException(
                    f"Could not persist '{operation}'",
                    operation=operation,
                    namespaces=list(NAMESPACES),
                    original_error=e,
                )

            self._state = staged
            logger.debug(f"Committed '{operation}'")

    # Treatments

    async def add_treatment(
        self,
        kind: TreatmentKind,
        data: Union[TreatmentCreate, Dict[str, Any]],
    ) -> TreatmentPlanResult:
        """
        Record a treatment, or expand selected protocols into reminder chains.

        Returns:
            Ids of the created records and any per-protocol errors

        Raises:
            SchemaValidationException: If the payload is malformed
            ValidationException: If no due date can be determined, the reminder
                link is invalid, or no protocol produced a record
        """
        request = _parse(TreatmentCreate, data)
        async with self._unit_of_work("add_treatment") as state:
            if request.protocols:
                result = self._expand_protocols(state, kind, request)
            else:
                result = self._record_single(state, kind, request)

        logger.info(
            f"Added {len(result.created_ids)} {kind.value} record(s) "
            f"for patient {request.patient_id}"
        )
        return result

    def _record_single(
        self, state: ClinicState, kind: TreatmentKind, request: TreatmentCreate
    ) -> TreatmentPlanResult:
        records = state.treatments(kind)

        calculated = None
        if request.species:
            calculated = resolve_due_date(
                state.protocols(kind),
                request.product_name,
                request.species,
                request.date_given,
                self.normalized_matching,
            )
        next_due = request.next_due_date or calculated
        if next_due is None:
            raise ValidationException(
                f"No next due date given and no protocol matches '{request.product_name}'",
                field="next_due_date",
            )

        record_id = uuid4()
        fields: Dict[str, Any] = dict(
            id=record_id,
            patient_id=request.patient_id,
            owner_id=request.owner_id,
            patient_name=request.patient_name,
            product_name=request.product_name,
            product_type=request.product_type,
            date_given=request.date_given,
            next_due_date=next_due,
            calculated_due_date=calculated,
            cost=request.cost,
            batch_number=request.batch_number,
            manufacturer=request.manufacturer,
            veterinarian=request.veterinarian,
            notes=request.notes,
            reminder_appointment_id=request.reminder_appointment_id,
        )

        if request.original_treatment_id is not None:
            root = validate_chain_link(
                records, request.original_treatment_id, request.patient_id, kind.label
            )
            record_cls: Type[TreatmentRecordBase] = ReminderTreatment
            fields["original_treatment_id"] = root.id
            fields["status"] = request.status or TreatmentStatus.SCHEDULED
        else:
            record_cls = NewTreatment
            fields["status"] = request.status or TreatmentStatus.COMPLETED

        if fields["status"] is TreatmentStatus.COMPLETED:
            reconciliation = state.ledger().reconcile(
                request.product_name,
                kind.stock_category,
                1,
                on_date=request.date_given,
                reason=kind.movement_reason,
                reference=f"{kind.label} #{record_id}",
                source_id=record_id,
                performed_by=request.veterinarian,
            )
            fields.update(
                stock_item_id=reconciliation.stock_item_id,
                is_in_stock=reconciliation.is_in_stock,
                stock_quantity=reconciliation.stock_quantity,
                stock_deducted=reconciliation.deducted,
            )

        records.append(record_cls(**fields))
        return TreatmentPlanResult(primary_id=record_id, created_ids=[record_id])

    def _expand_protocols(
        self, state: ClinicState, kind: TreatmentKind, request: TreatmentCreate
    ) -> TreatmentPlanResult:
        records = state.treatments(kind)
        catalog = state.protocols(kind)
        ledger = state.ledger()
        result = TreatmentPlanResult()

        for selection in request.protocols:
            protocol = next((p for p in catalog if p.id == selection.protocol_id), None)
            if protocol is None:
                result.errors.append(f"Unknown protocol {selection.protocol_id}")
                continue

            expansion = expand_protocol(
                protocol,
                request.species,
                request.date_given,
                selection.reminder_dates,
                self.normalized_matching,
            )
            result.errors.extend(expansion.errors)
            if not expansion.can_anchor:
                continue

            root_id = uuid4()
            shared = dict(
                patient_id=request.patient_id,
                owner_id=request.owner_id,
                patient_name=request.patient_name,
                protocol_name=protocol.name,
                product_type=request.product_type or protocol.product_type,
                cost=request.cost,
                manufacturer=request.manufacturer or protocol.manufacturer,
                veterinarian=request.veterinarian,
            )
            reconciliation = ledger.reconcile(
                protocol.name,
                kind.stock_category,
                1,
                on_date=request.date_given,
                reason=kind.movement_reason,
                reference=f"{kind.label} #{root_id}",
                source_id=root_id,
                performed_by=request.veterinarian,
            )
            records.append(
                NewTreatment(
                    id=root_id,
                    product_name=expansion.initial.product_name,
                    date_given=request.date_given,
                    next_due_date=expansion.next_due_date,
                    calculated_due_date=expansion.calculated_due_date,
                    status=TreatmentStatus.COMPLETED,
                    stock_item_id=reconciliation.stock_item_id,
                    is_in_stock=reconciliation.is_in_stock,
                    stock_quantity=reconciliation.stock_quantity,
                    stock_deducted=reconciliation.deducted,
                    batch_number=request.batch_number,
                    notes=request.notes,
                    **shared,
                )
            )
            result.created_ids.append(root_id)

            for dose in expansion.reminders:
                reminder = ReminderTreatment(
                    product_name=dose.product_name,
                    date_given=dose.scheduled_date,
                    next_due_date=dose.scheduled_date,
                    calculated_due_date=dose.calculated_date,
                    status=TreatmentStatus.SCHEDULED,
                    original_treatment_id=root_id,
                    **shared,
                )
                records.append(reminder)
                result.created_ids.append(reminder.id)

        if not result.created_ids:
            raise ValidationException(
                "None of the selected protocols could be applied",
                field="protocols",
                validation_errors={"protocols": result.errors},
            )

        result.primary_id = result.created_ids[0]
        if result.has_errors:
            logger.warning(
                f"Protocol expansion skipped {len(result.errors)} item(s)",
                extra={"errors": result.errors},
            )
        return result

    async def update_treatment(
        self,
        kind: TreatmentKind,
        record_id: UUID,
        data: Union[TreatmentUpdate, Dict[str, Any]],
    ) -> TreatmentRecordBase:
        """
        Edit a treatment record.

        Forcing ``status`` to completed here only closes the record: no stock
        is reconciled and the record becomes billable with
        ``stock_deducted=False``. Record a dose that was actually
        administered with :meth:`confirm_reminder` instead.

        Raises:
            RecordNotFoundException: If the record does not exist
            BusinessRuleException: If the update would re-open a completed record
        """
        changes = _parse(TreatmentUpdate, data).model_dump(exclude_unset=True)
        async with self._unit_of_work("update_treatment") as state:
            records = state.treatments(kind)
            record = find_record(records, record_id, kind.label)
            new_status = changes.get("status")
            if (
                record.is_completed
                and new_status is not None
                and new_status is not TreatmentStatus.COMPLETED
            ):
                raise BusinessRuleException(
                    "Completed treatments cannot be re-opened",
                    rule_name="completed_is_terminal",
                    context={"record_id": str(record_id), "status": new_status.value},
                )
            updated = _revalidate(record, changes)
            _replace(records, updated)
        return updated

    async def delete_treatment(self, kind: TreatmentKind, record_id: UUID) -> int:
        """
        Delete a record; deleting a ``new`` record also deletes its reminders.

        Returns:
            Number of records removed
        """
        async with self._unit_of_work("delete_treatment") as state:
            records = state.treatments(kind)
            target = find_record(records, record_id, kind.label)
            remaining, removed = cascade_delete(records, target)
            state.set_treatments(kind, remaining)

        logger.info(f"Deleted {len(removed)} {kind.value} record(s) starting at {record_id}")
        return len(removed)

    async def schedule_reminder(
        self,
        kind: TreatmentKind,
        original_id: UUID,
        scheduled_date: date,
        appointment_id: Optional[str] = None,
    ) -> ReminderTreatment:
        """
        Create a scheduled reminder hanging off the chain of ``original_id``.

        The reminder and the record it follows up both carry
        ``appointment_id`` until the reminder is confirmed.
        """
        async with self._unit_of_work("schedule_reminder") as state:
            records = state.treatments(kind)
            target = find_record(records, original_id, kind.label)
            root = chain_root(records, target, kind.label)
            if scheduled_date < target.date_given:
                raise ValidationException(
                    "Reminder cannot be scheduled before the treatment it follows",
                    field="scheduled_date",
                    value=scheduled_date,
                )

            reminder = ReminderTreatment(
                patient_id=target.patient_id,
                owner_id=target.owner_id,
                patient_name=target.patient_name,
                product_name=target.product_name,
                protocol_name=target.protocol_name,
                product_type=target.product_type,
                date_given=scheduled_date,
                next_due_date=scheduled_date,
                calculated_due_date=target.calculated_due_date,
                status=TreatmentStatus.SCHEDULED,
                cost=target.cost,
                batch_number=target.batch_number,
                manufacturer=target.manufacturer,
                veterinarian=target.veterinarian,
                notes=f"Rappel de {target.product_name}",
                original_treatment_id=root.id,
                reminder_appointment_id=appointment_id,
            )
            records.append(reminder)
            if appointment_id is not None:
                _replace(
                    records,
                    target.model_copy(update={"reminder_appointment_id": appointment_id}),
                )
        return reminder

    async def confirm_reminder(
        self,
        kind: TreatmentKind,
        record_id: UUID,
        data: Union[ReminderConfirmation, Dict[str, Any]],
    ) -> ReminderTreatment:
        """
        Record that a due treatment was performed.

        Creates a completed reminder for the administered dose (reconciling
        stock) and marks ``record_id`` completed in the same commit.

        Raises:
            RecordNotFoundException: If the record does not exist
            BusinessRuleException: If the record is already completed
        """
        confirmation = _parse(ReminderConfirmation, data)
        async with self._unit_of_work("confirm_reminder") as state:
            records = state.treatments(kind)
            target = find_record(records, record_id, kind.label)
            if target.is_completed:
                raise BusinessRuleException(
                    "Treatment is already completed",
                    rule_name="confirm_open_reminder",
                    context={"record_id": str(record_id)},
                )
            root = chain_root(records, target, kind.label)

            performed_id = uuid4()
            reconciliation = state.ledger().reconcile(
                target.stock_product_name,
                kind.stock_category,
                1,
                on_date=confirmation.date_performed,
                reason=kind.movement_reason,
                reference=f"{kind.label} #{performed_id}",
                source_id=performed_id,
                performed_by=confirmation.performed_by,
            )
            performed, updated = build_confirmation(
                target, root, confirmation, reconciliation, performed_id
            )
            _replace(records, updated)
            records.append(performed)

        logger.info(f"Confirmed {kind.value} reminder {record_id} as {performed.id}")
        return performed

    def get_treatment(self, kind: TreatmentKind, record_id: UUID) -> TreatmentRecordBase:
        return find_record(self._state.treatments(kind), record_id, kind.label)

    def get_treatments(self, kind: TreatmentKind) -> List[TreatmentRecordBase]:
        return list(self._state.treatments(kind))

    def get_treatments_by_patient(
        self, kind: TreatmentKind, patient_id: UUID
    ) -> List[TreatmentRecordBase]:
        return records_by_patient(self._state.treatments(kind), patient_id)

    def get_overdue_treatments(self, kind: TreatmentKind) -> List[TreatmentRecordBase]:
        return overdue_records(self._state.treatments(kind), self.today())

    def get_upcoming_treatments(
        self, kind: TreatmentKind, days: Optional[int] = None
    ) -> List[TreatmentRecordBase]:
        """Open records due within ``days`` (settings default) of today."""
        window = self.settings.upcoming_days if days is None else days
        return upcoming_records(self._state.treatments(kind), self.today(), window)

    def get_treatments_by_status(
        self, kind: TreatmentKind, status: TreatmentStatus
    ) -> List[TreatmentRecordBase]:
        return records_by_status(self._state.treatments(kind), status)

    async def open_treatments(self, kind: TreatmentKind) -> List[TreatmentRecordBase]:
        """Sweep statuses of one collection, persist changes, and return it."""
        records = self._state.treatments(kind)
        swept = sweep_statuses(records, self.today())
        if any(new is not old for new, old in zip(swept, records)):
            async with self._unit_of_work("open_treatments") as state:
                state.set_treatments(kind, sweep_statuses(state.treatments(kind), self.today()))
        return self.get_treatments(kind)

    async def refresh_statuses(self) -> int:
        """
        Sweep both treatment collections.

        Returns:
            Number of records whose status changed
        """
        today = self.today()
        changed = 0
        for kind in TreatmentKind:
            records = self._state.treatments(kind)
            changed += sum(
                1 for new, old in zip(sweep_statuses(records, today), records) if new is not old
            )
        if changed:
            async with self._unit_of_work("refresh_statuses") as state:
                for kind in TreatmentKind:
                    state.set_treatments(kind, sweep_statuses(state.treatments(kind), today))
            logger.info(f"Status sweep updated {changed} record(s)")
        return changed

    def resolve_due_date(
        self, kind: TreatmentKind, product_name: str, species: str, date_given: date
    ) -> Optional[date]:
        return resolve_due_date(
            self._state.protocols(kind),
            product_name,
            species,
            date_given,
            self.normalized_matching,
        )

    # Protocols

    async def add_protocol(
        self, kind: TreatmentKind, data: Union[ProtocolCreate, Dict[str, Any]]
    ) -> Protocol:
        request = _parse(ProtocolCreate, data)
        protocol = Protocol(**request.model_dump())
        async with self._unit_of_work("add_protocol") as state:
            state.protocols(kind).append(protocol)
        return protocol

    async def update_protocol(
        self,
        kind: TreatmentKind,
        protocol_id: UUID,
        data: Union[ProtocolUpdate, Dict[str, Any]],
    ) -> Protocol:
        changes = _parse(ProtocolUpdate, data).model_dump(exclude_unset=True)
        changes["updated_at"] = datetime.now(timezone.utc)
        async with self._unit_of_work("update_protocol") as state:
            protocols = state.protocols(kind)
            updated = _revalidate(_find(protocols, protocol_id, "Protocol"), changes)
            _replace(protocols, updated)
        return updated

    async def deactivate_protocol(self, kind: TreatmentKind, protocol_id: UUID) -> Protocol:
        """Remove a protocol from matching; existing records keep their dates."""
        return await self.update_protocol(kind, protocol_id, {"is_active": False})

    async def delete_protocol(self, kind: TreatmentKind, protocol_id: UUID) -> None:
        async with self._unit_of_work("delete_protocol") as state:
            protocols = state.protocols(kind)
            _find(protocols, protocol_id, "Protocol")
            state.set_protocols(kind, [p for p in protocols if p.id != protocol_id])

    def get_protocol(self, kind: TreatmentKind, protocol_id: UUID) -> Protocol:
        return _find(self._state.protocols(kind), protocol_id, "Protocol")

    def get_protocols_by_species(self, kind: TreatmentKind, species: str) -> List[Protocol]:
        return [p for p in self._state.protocols(kind) if p.species == species]

    def get_active_protocols(self, kind: TreatmentKind) -> List[Protocol]:
        return [p for p in self._state.protocols(kind) if p.is_active]

    # Stock

    async def add_stock_item(
        self, data: Union[StockItemCreate, Dict[str, Any]]
    ) -> StockItem:
        item = StockItem(**_parse(StockItemCreate, data).model_dump())
        async with self._unit_of_work("add_stock_item") as state:
            state.stock_items.append(item)
        return item

    async def update_stock_item(
        self, item_id: UUID, data: Union[StockItemUpdate, Dict[str, Any]]
    ) -> StockItem:
        """
        Edit an item.

        A changed ``current_stock`` is logged as an ``adjustment`` movement so
        the movement log keeps accounting for every unit.
        """
        changes = _parse(StockItemUpdate, data).model_dump(exclude_unset=True)
        async with self._unit_of_work("update_stock_item") as state:
            ledger = state.ledger()
            item = ledger.get_item(item_id)
            target_stock = changes.pop("current_stock", None)
            if target_stock is not None and target_stock != item.current_stock:
                ledger.apply_movement(
                    item_id,
                    MovementType.ADJUSTMENT,
                    target_stock - item.current_stock,
                    reason=ADJUSTMENT_REASON,
                    on_date=self.today(),
                )
                item = ledger.get_item(item_id)
            changes["last_updated"] = datetime.now(timezone.utc)
            updated = _revalidate(item, changes)
            _replace(state.stock_items, updated)
        return updated

    async def delete_stock_item(self, item_id: UUID) -> StockItem:
        """Deactivate an item; its movement history is kept."""
        async with self._unit_of_work("delete_stock_item") as state:
            item = _find(state.stock_items, item_id, "Stock item")
            updated = item.model_copy(
                update={"is_active": False, "last_updated": datetime.now(timezone.utc)}
            )
            _replace(state.stock_items, updated)
        return updated

    async def record_stock_movement(
        self, data: Union[StockMovementCreate, Dict[str, Any]]
    ) -> StockMovement:
        """
        Apply a manual movement.

        Raises:
            RecordNotFoundException: If the item does not exist
            BusinessRuleException: If stock would become negative
        """
        request = _parse(StockMovementCreate, data)
        async with self._unit_of_work("record_stock_movement") as state:
            movement = state.ledger().apply_movement(
                request.item_id,
                request.type,
                request.quantity,
                reason=request.reason,
                on_date=request.date or self.today(),
                reference=request.reference,
                performed_by=request.performed_by,
                notes=request.notes,
            )
        return movement

    def get_stock_item(self, item_id: UUID) -> StockItem:
        return _find(self._state.stock_items, item_id, "Stock item")

    def get_stock_items(
        self, category: Optional[StockCategory] = None, include_inactive: bool = False
    ) -> List[StockItem]:
        return [
            item
            for item in self._state.stock_items
            if (include_inactive or item.is_active)
            and (category is None or item.category is category)
        ]

    def get_stock_movements(self, item_id: Optional[UUID] = None) -> List[StockMovement]:
        return self._state.ledger().movements_for(item_id)

    def get_stock_alerts(self) -> List[StockAlert]:
        return stock_alerts(
            self._state.stock_items, self.today(), self.settings.expiry_warning_days
        )

    # Consultations and prescriptions

    async def add_consultation(
        self, data: Union[ConsultationCreate, Dict[str, Any]]
    ) -> Consultation:
        consultation = Consultation(**_parse(ConsultationCreate, data).model_dump())
        async with self._unit_of_work("add_consultation") as state:
            state.consultations.append(consultation)
        return consultation

    async def update_consultation(
        self, consultation_id: UUID, data: Union[ConsultationUpdate, Dict[str, Any]]
    ) -> Consultation:
        changes = _parse(ConsultationUpdate, data).model_dump(exclude_unset=True)
        async with self._unit_of_work("update_consultation") as state:
            current = _find(state.consultations, consultation_id, "Consultation")
            updated = _revalidate(current, changes)
            _replace(state.consultations, updated)
        return updated

    async def delete_consultation(self, consultation_id: UUID) -> None:
        async with self._unit_of_work("delete_consultation") as state:
            _find(state.consultations, consultation_id, "Consultation")
            state.consultations = [
                c for c in state.consultations if c.id != consultation_id
            ]

    def get_consultation(self, consultation_id: UUID) -> Consultation:
        return _find(self._state.consultations, consultation_id, "Consultation")

    def get_consultations(self, patient_id: Optional[UUID] = None) -> List[Consultation]:
        return [
            c
            for c in self._state.consultations
            if patient_id is None or c.patient_id == patient_id
        ]

    async def add_prescription(
        self, data: Union[PrescriptionCreate, Dict[str, Any]]
    ) -> Prescription:
        """
        Record a prescription, reconciling stock for each medication.

        Each line is matched against active ``medication`` items and deducted
        by its prescribed quantity when enough is on hand.
        """
        request = _parse(PrescriptionCreate, data)
        prescription_id = uuid4()
        async with self._unit_of_work("add_prescription") as state:
            ledger = state.ledger()
            medications = []
            for line in request.medications:
                reconciliation = ledger.reconcile(
                    line.name,
                    StockCategory.MEDICATION,
                    line.quantity,
                    on_date=request.date,
                    reason=PRESCRIPTION_REASON,
                    reference=f"Prescription #{prescription_id}",
                    source_id=prescription_id,
                    performed_by=request.prescribed_by,
                )
                medications.append(
                    PrescriptionMedication(
                        **line.model_dump(),
                        stock_item_id=reconciliation.stock_item_id,
                        is_in_stock=reconciliation.is_in_stock,
                        stock_quantity=reconciliation.stock_quantity,
                        stock_deducted=reconciliation.deducted,
                    )
                )

            prescription = Prescription(
                id=prescription_id,
                medications=medications,
                **request.model_dump(exclude={"medications"}),
            )
            state.prescriptions.append(prescription)
        return prescription

    async def update_prescription(
        self, prescription_id: UUID, data: Union[PrescriptionUpdate, Dict[str, Any]]
    ) -> Prescription:
        changes = _parse(PrescriptionUpdate, data).model_dump(exclude_unset=True)
        async with self._unit_of_work("update_prescription") as state:
            current = _find(state.prescriptions, prescription_id, "Prescription")
            updated = _revalidate(current, changes)
            _replace(state.prescriptions, updated)
        return updated

    async def delete_prescription(self, prescription_id: UUID) -> None:
        async with self._unit_of_work("delete_prescription") as state:
            _find(state.prescriptions, prescription_id, "Prescription")
            state.prescriptions = [
                p for p in state.prescriptions if p.id != prescription_id
            ]

    def get_prescription(self, prescription_id: UUID) -> Prescription:
        return _find(self._state.prescriptions, prescription_id, "Prescription")

    def get_prescriptions(self, patient_id: Optional[UUID] = None) -> List[Prescription]:
        return [
            p
            for p in self._state.prescriptions
            if patient_id is None or p.patient_id == patient_id
        ]

    # Accounting

    async def add_accounting_entry(
        self, data: Union[AccountingEntryCreate, Dict[str, Any]]
    ) -> AccountingEntry:
        """Record a manual entry."""
        request = _parse(AccountingEntryCreate, data)
        entry = AccountingEntry(category=EntryCategory.MANUAL, **request.model_dump())
        async with self._unit_of_work("add_accounting_entry") as state:
            state.accounting_entries.append(entry)
        return entry

    async def update_accounting_entry(
        self, entry_id: UUID, data: Union[AccountingEntryUpdate, Dict[str, Any]]
    ) -> AccountingEntry:
        """
        Edit an entry.

        Raises:
            BusinessRuleException: If an automatic entry's type, amount, date or
                source would change
        """
        changes = _parse(AccountingEntryUpdate, data).model_dump(exclude_unset=True)
        async with self._unit_of_work("update_accounting_entry") as state:
            entry = _find(state.accounting_entries, entry_id, "Accounting entry")
            if entry.is_automatic:
                locked = [
                    name
                    for name in AUTOMATIC_IDENTITY_FIELDS
                    if name in changes and changes[name] != getattr(entry, name)
                ]
                if locked:
                    raise BusinessRuleException(
                        "Automatic entries cannot change their identity fields",
                        rule_name="automatic_entry_identity",
                        context={"entry_id": str(entry_id), "fields": locked},
                    )
            updated = _revalidate(entry, changes)
            _replace(state.accounting_entries, updated)
        return updated

    async def delete_accounting_entry(self, entry_id: UUID) -> None:
        async with self._unit_of_work("delete_accounting_entry") as state:
            _find(state.accounting_entries, entry_id, "Accounting entry")
            state.accounting_entries = [
                e for e in state.accounting_entries if e.id != entry_id
            ]

    def get_accounting_entries(
        self, start: Optional[date] = None, end: Optional[date] = None
    ) -> List[AccountingEntry]:
        return [
            e
            for e in self._state.accounting_entries
            if (start is None or e.date >= start) and (end is None or e.date <= end)
        ]

    @staticmethod
    def _clinical_events(state: ClinicState):
        return chain(
            consultation_events(state.consultations),
            treatment_events(state.vaccinations, TreatmentKind.VACCINATION),
            treatment_events(state.antiparasitics, TreatmentKind.ANTIPARASITIC),
            prescription_events(state.prescriptions),
            stock_purchase_events(state.stock_movements, state.stock_items),
        )

    async def derive_accounting_entries(
        self,
        start: Optional[date] = None,
        end: Optional[date] = None,
        created_by: Optional[str] = None,
    ) -> List[AccountingEntry]:
        """Persist automatic entries for clinical events not yet accounted for."""
        async with self._unit_of_work("derive_accounting_entries") as state:
            new_entries = derive_entries(
                self._clinical_events(state),
                state.accounting_entries,
                start,
                end,
                created_by,
            )
            state.accounting_entries.extend(new_entries)
        return new_entries

    async def generate_accounting_summary(
        self,
        period: SummaryPeriod,
        start: date,
        end: date,
    ) -> AccountingSummary:
        """Derive pending automatic entries for the range, then total it."""
        if end < start:
            raise ValidationException(
                "Summary end date cannot be before its start date",
                field="end",
                value=end,
            )
        new_entries = await self.derive_accounting_entries(start, end)
        return build_summary(
            self._state.accounting_entries, period, start, end, len(new_entries)
        )

    # Whole-state operations

    async def reset(self, *namespaces: str) -> None:
        """
        Empty the given namespaces, or all of them.

        Protocol catalogs are reseeded from the defaults instead of emptied
        when ``seed_protocols`` is on.
        """
        targets = namespaces or NAMESPACES
        unknown = [ns for ns in targets if ns not in NAMESPACES]
        if unknown:
            raise ValidationException(
                f"Unknown namespace(s): {', '.join(unknown)}",
                field="namespaces",
                value=unknown,
            )

        async with self._unit_of_work("reset") as state:
            for namespace in targets:
                if namespace in PROTOCOL_NAMESPACES and self.settings.seed_protocols:
                    setattr(state, namespace, _default_catalog(namespace))
                else:
                    setattr(state, namespace, [])
        logger.warning(f"Reset namespaces: {', '.join(targets)}")

    def export_state(self) -> Dict[str, List[Any]]:
        """JSON-ready copy of every collection, keyed by bare namespace."""
        return self._state.model_dump(mode="json")

    async def import_state(self, payload: Dict[str, List[Any]]) -> None:
        """
        Replace the namespaces present in ``payload``; others are kept.

        Raises:
            ValidationException: If ``payload`` names an unknown namespace
            SchemaValidationException: If a collection is malformed
        """
        unknown = [ns for ns in payload if ns not in NAMESPACES]
        if unknown:
            raise ValidationException(
                f"Unknown namespace(s): {', '.join(unknown)}",
                field="namespaces",
                value=unknown,
            )
        imported = _parse(ClinicState, payload)
        async with self._unit_of_work("import_state") as state:
            for namespace in payload:
                setattr(state, namespace, getattr(imported, namespace))
        logger.info(f"Imported namespaces: {', '.join(payload)}")

    async def close(self) -> None:
        await self.store.close()
