"""
Treatment domain enumerations.

Vaccinations and antiparasitic treatments share one record shape; these
enumerations describe which collection a record belongs to and where it is
in its lifecycle.
"""

import enum


class TreatmentKind(enum.Enum):
    """The two parallel treatment collections."""

    VACCINATION = "vaccination"
    ANTIPARASITIC = "antiparasitic"

    @property
    def stock_category(self) -> "StockCategory":
        """Stock category consumed when this kind of treatment is administered."""
        from .stock import StockCategory

        if self is TreatmentKind.VACCINATION:
            return StockCategory.VACCINE
        return StockCategory.MEDICATION

    @property
    def movement_reason(self) -> str:
        """Reason recorded on the stock movement of an administered dose."""
        if self is TreatmentKind.VACCINATION:
            return "Vaccination"
        return "Traitement antiparasitaire"

    @property
    def label(self) -> str:
        """Human-readable label used in references and descriptions."""
        if self is TreatmentKind.VACCINATION:
            return "Vaccination"
        return "Antiparasitaire"


class TreatmentCategory(enum.Enum):
    """Discriminator of the treatment record union."""

    NEW = "new"  # the actual administration
    REMINDER = "reminder"  # follow-up derived from a protocol interval


class TreatmentStatus(enum.Enum):
    """Lifecycle status of a treatment record; COMPLETED is terminal."""

    COMPLETED = "completed"
    SCHEDULED = "scheduled"
    OVERDUE = "overdue"
    MISSED = "missed"


class AntiparasiticType(enum.Enum):
    """Target of an antiparasitic protocol."""

    FLEA_TICK = "flea_tick"
    WORMING = "worming"
    COMBINED = "combined"
    OTHER = "other"


class Species(enum.Enum):
    """Species labels used by the default protocol catalogs."""

    DOG = "Chien"
    CAT = "Chat"
    BIRD = "Oiseau"
    RABBIT = "Lapin"
    FERRET = "Furet"
    OTHER = "Autre"
