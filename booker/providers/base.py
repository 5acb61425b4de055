from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from booker.models.schemas import BookingRequest, Preferences


@dataclass(frozen=True)
class Slot:
    date_iso: str
    time_24h: str
    minutes: int
    location: str
    deep_link: str | None = None

    def __post_init__(self) -> None:
        if self.minutes <= 0:
            raise ValueError(f"Slot duration must be positive, got {self.minutes}")
        if not self.location.strip():
            raise ValueError("Slot location must not be empty")


@dataclass(frozen=True)
class BookedSlot:
    time: str
    duration: int
    location: str


@dataclass(frozen=True)
class BookingResult:
    success: bool
    message: str
    confirmation_number: str | None = None
    booked_slot: BookedSlot | None = None

    @classmethod
    def succeeded(
        cls,
        message: str,
        booked_slot: BookedSlot,
        confirmation_number: str | None = None,
    ) -> "BookingResult":
        return cls(
            success=True,
            message=message,
            confirmation_number=confirmation_number,
            booked_slot=booked_slot,
        )

    @classmethod
    def failed(cls, message: str) -> "BookingResult":
        return cls(success=False, message=message)


@dataclass
class ScanResult:
    """Outcome of an availability check.

    ``degraded`` is set when ``slots`` holds the placeholder instead of real
    portal data, so callers can tell "no openings" apart from "scan broke".
    """

    slots: list[Slot] = field(default_factory=list)
    degraded: bool = False
    reason: str | None = None
    resources_scanned: int = 0


class PortalProvider(ABC):
    """Abstract base class for facility-reservation portal providers."""

    @abstractmethod
    async def check_availability(self, preferences: Preferences) -> ScanResult:
        """Scan the portal for bookable slots matching the preferences."""
        pass

    @abstractmethod
    async def book_slot(self, request: BookingRequest) -> BookingResult:
        """Run the reservation workflow for one slot."""
        pass

    @abstractmethod
    async def close(self) -> None:
        pass
