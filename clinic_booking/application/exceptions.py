from __future__ import annotations


class ClinicApiError(RuntimeError):
    """Base class for failures talking to the clinic API."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ClinicApiUnavailableError(ClinicApiError):
    """Raised when the clinic API cannot be reached (timeouts, network errors)."""
    pass


class ClinicApiRejectedError(ClinicApiError):
    """Raised when the clinic API answers with a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None, server_message: str | None = None) -> None:
        super().__init__(message, status_code)
        self.server_message = server_message


class ClinicAuthError(ClinicApiRejectedError):
    """Raised on 401/403 or when a bearer call has no token to send."""
    pass


class ClinicApiContractError(ClinicApiError):
    """Raised when a success response does not have the expected shape."""
    pass


class InvalidSelectionError(ValueError):
    """Raised when a wizard selection is not allowed in the current state."""
    pass


class AppointmentNotEditableError(ValueError):
    """Raised when an appointment in a terminal status is rescheduled or cancelled."""
    pass
