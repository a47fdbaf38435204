from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from clinic_booking.application.use_cases.booking import BookingWizard


class WorkflowStorePort(ABC):
    @abstractmethod
    def add(self, workflow: "BookingWizard", owner: str | None = None) -> str:
        """Keep a workflow for ``owner`` (the caller's bearer token). Returns its session id."""
        raise NotImplementedError

    @abstractmethod
    def get(self, session_id: str, owner: str | None = None) -> "BookingWizard | None":
        """The workflow, or None when it is unknown or belongs to another caller."""
        raise NotImplementedError

    @abstractmethod
    def remove(self, session_id: str) -> None:
        raise NotImplementedError
