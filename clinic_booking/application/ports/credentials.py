from __future__ import annotations

from abc import ABC, abstractmethod


class CredentialProviderPort(ABC):
    @abstractmethod
    def get_token(self) -> str | None:
        """Current bearer token, or None when the caller is anonymous."""
        raise NotImplementedError
