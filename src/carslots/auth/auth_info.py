"""Authentication information for carslots (OAuth token only)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(slots=True, frozen=True)
class AuthInfo:
    """
    Authentication information.

    Only OAuth is supported:
        kind = "oauth"
        data must include:
            - token
    """

    kind: str
    data: dict[str, Any]

    def __post_init__(self) -> None:
        if self.kind != "oauth":
            raise ValueError("AuthInfo.kind must be 'oauth'")

        if not isinstance(self.data, dict):
            raise TypeError("AuthInfo.data must be a dict")

        value = self.data.get("token")
        if not isinstance(value, str) or not value.strip():
            raise ValueError("AuthInfo.data['token'] must be a non-empty string")

    @classmethod
    def from_token(cls, token: str) -> "AuthInfo":
        return cls(kind="oauth", data={"token": token})

    @property
    def token(self) -> str:
        """OAuth token for the disk API."""
        return str(self.data["token"]).strip()

    @property
    def authorization_header(self) -> str:
        """Value of the HTTP Authorization header."""
        return f"OAuth {self.token}"

    def __repr__(self) -> str:
        return "AuthInfo(kind='oauth', data={'token': '***'})"
