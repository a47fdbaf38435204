from __future__ import annotations

import hmac
import logging
import uuid
from collections import OrderedDict

from clinic_booking.application.ports.workflow_store import WorkflowStorePort
from clinic_booking.application.use_cases.booking import BookingWizard


class MemoryWorkflowStore(WorkflowStorePort):
    def __init__(self, limit: int = 500) -> None:
        self._workflows: OrderedDict[str, tuple[BookingWizard, str | None]] = OrderedDict()
        self._limit = limit
        self._logger = logging.getLogger(__name__)

    def add(self, workflow: BookingWizard, owner: str | None = None) -> str:
        session_id = uuid.uuid4().hex
        self._workflows[session_id] = (workflow, owner)
        while len(self._workflows) > self._limit:
            evicted, _ = self._workflows.popitem(last=False)
            self._logger.info("Evicted booking session", extra={"session_id": evicted})
        return session_id

    def get(self, session_id: str, owner: str | None = None) -> BookingWizard | None:
        entry = self._workflows.get(session_id)
        if entry is None:
            return None
        workflow, expected = entry
        if not _same_owner(expected, owner):
            self._logger.warning("Booking session requested by another caller", extra={"session_id": session_id})
            return None
        self._workflows.move_to_end(session_id)
        return workflow

    def remove(self, session_id: str) -> None:
        self._workflows.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._workflows)


def _same_owner(expected: str | None, actual: str | None) -> bool:
    if expected is None or actual is None:
        return expected is actual
    return hmac.compare_digest(expected.encode("utf-8"), actual.encode("utf-8"))
