from __future__ import annotations

from clinic_booking.application.ports.credentials import CredentialProviderPort


class StaticTokenProvider(CredentialProviderPort):
    def __init__(self, token: str | None = None) -> None:
        self._token = token.strip() if token and token.strip() else None

    def get_token(self) -> str | None:
        return self._token

    @classmethod
    def from_authorization_header(cls, header: str | None) -> "StaticTokenProvider":
        if not header:
            return cls()
        scheme, _, value = header.partition(" ")
        if scheme.lower() != "bearer":
            return cls()
        return cls(value)
