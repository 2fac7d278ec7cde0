# backend/scheduler/ports.py
"""Collaborator interfaces the scheduling service depends on."""
from contextlib import AbstractContextManager
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol, Sequence

from .conflicts import Interval


class AppointmentStore(Protocol):
    def booking_lock(self, veterinarian_id: str) -> AbstractContextManager:
        """Serialize check-then-write for one veterinarian."""

    def blocking_intervals(
        self, veterinarian_id: str, window_start: datetime, window_end: datetime
    ) -> List[Interval]:
        """Pending/confirmed bookings of the vet that overlap the window."""

    def get(self, appointment_id: str) -> Optional[Any]:
        ...

    def get_for_update(self, appointment_id: str) -> Optional[Any]:
        """Fresh, row-locked read; call inside ``booking_lock``."""

    def add(self, **fields) -> Any:
        ...

    def update(self, appointment: Any, **fields) -> Any:
        ...

    def query(
        self,
        *,
        owner_id: Optional[str] = None,
        veterinarian_id: Optional[str] = None,
        status: Optional[str] = None,
        starts_after: Optional[datetime] = None,
        ascending: bool = False,
        limit: int = 20,
        offset: int = 0,
    ) -> Sequence[Any]:
        ...


class Directory(Protocol):
    """Read-only lookups into records owned by other parts of the system."""

    def get_user(self, user_id: str) -> Optional[Any]:
        ...

    def get_pet(self, pet_id: str) -> Optional[Any]:
        ...


class NotificationGateway(Protocol):
    def notify(
        self, user_id: str, type: str, title: str, message: str, data: Dict[str, Any]
    ) -> None:
        ...


class TokenVerifier(Protocol):
    def verify(self, token: str) -> Optional[Any]:
        """Return the caller's user record, or None if the token is not valid."""
