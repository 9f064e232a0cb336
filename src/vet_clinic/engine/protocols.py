"""
Protocol resolution and multi-interval expansion.

Pure functions over protocol catalogs: due-date resolution for a single
product, and expansion of a selected protocol into the planned doses of one
reminder chain.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Sequence

from ..schemas.protocol import Protocol, ProtocolInterval
from ..utils.datetime_utils import add_interval
from ..utils.validation import names_match


def find_protocol(
    protocols: Sequence[Protocol],
    product_name: str,
    species: str,
    normalized: bool = False,
) -> Optional[Protocol]:
    """Return the first active protocol matching a product and species."""
    for protocol in protocols:
        if protocol.is_active and protocol.matches(product_name, species, normalized):
            return protocol
    return None


def resolve_due_date(
    protocols: Sequence[Protocol],
    product_name: str,
    species: str,
    date_given: date,
    normalized: bool = False,
) -> Optional[date]:
    """
    Compute the protocol-suggested next due date.

    Uses the last (long-term) interval of the matching protocol. Returns None
    when no active protocol matches or the protocol has no intervals.

    Args:
        protocols: Catalog to search
        product_name: Administered product
        species: Patient species
        date_given: Administration date
        normalized: Compare names case-insensitively with collapsed whitespace

    Returns:
        The interval applied to ``date_given`` (see :func:`add_interval`), or None
    """
    protocol = find_protocol(protocols, product_name, species, normalized)
    if protocol is None or protocol.last_interval is None:
        return None
    return add_interval(date_given, protocol.last_interval.offset_days)


@dataclass
class PlannedDose:
    """One dose of an expanded protocol."""

    interval: ProtocolInterval
    product_name: str
    scheduled_date: date
    calculated_date: date


@dataclass
class ProtocolExpansion:
    """Planned doses for one protocol, plus the problems found while planning."""

    protocol: Protocol
    initial: Optional[PlannedDose] = None
    reminders: List[PlannedDose] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def can_anchor(self) -> bool:
        return self.initial is not None

    @property
    def calculated_due_date(self) -> Optional[date]:
        """Due date implied by the last interval, ignoring overrides."""
        if self.initial is None or self.protocol.last_interval is None:
            return None
        return add_interval(
            self.initial.scheduled_date, self.protocol.last_interval.offset_days
        )

    @property
    def next_due_date(self) -> Optional[date]:
        """Date of the last planned dose, honouring overrides."""
        if self.initial is None:
            return None
        if self.reminders:
            return self.reminders[-1].scheduled_date
        return self.initial.scheduled_date


def expand_protocol(
    protocol: Protocol,
    species: str,
    date_given: date,
    reminder_dates: Optional[Dict[int, date]] = None,
    normalized: bool = False,
) -> ProtocolExpansion:
    """
    Plan the doses of one protocol for a new treatment.

    The zero-offset interval becomes the administered dose dated
    ``date_given``. Every later interval becomes a reminder dated with its
    override from ``reminder_dates`` or ``date_given + offset_days``. An
    override earlier than ``date_given`` skips that interval only. A protocol
    that is inactive, scoped to another species or lacks a zero-offset
    interval yields no doses at all.
    """
    expansion = ProtocolExpansion(protocol=protocol)
    overrides = reminder_dates or {}

    if not protocol.is_active:
        expansion.errors.append(f"Protocol '{protocol.name}' is inactive")
        return expansion

    if not names_match(protocol.species, species, normalized):
        expansion.errors.append(
            f"Protocol '{protocol.name}' is for {protocol.species}, not {species}"
        )
        return expansion

    initial_interval = protocol.initial_interval
    if initial_interval is None:
        expansion.errors.append(
            f"Protocol '{protocol.name}' has no initial (day 0) interval"
        )
        return expansion

    expansion.initial = PlannedDose(
        interval=initial_interval,
        product_name=protocol.dose_name(initial_interval),
        scheduled_date=date_given,
        calculated_date=date_given,
    )

    for interval in protocol.intervals:
        if interval.offset_days == 0:
            continue

        calculated = add_interval(date_given, interval.offset_days)
        override = overrides.get(interval.offset_days)
        if override is not None and override < date_given:
            expansion.errors.append(
                f"{protocol.dose_name(interval)}: date {override.isoformat()} "
                f"is before {date_given.isoformat()}"
            )
            continue

        expansion.reminders.append(
            PlannedDose(
                interval=interval,
                product_name=protocol.dose_name(interval),
                scheduled_date=override or calculated,
                calculated_date=calculated,
            )
        )

    return expansion
