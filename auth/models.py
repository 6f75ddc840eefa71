from __future__ import annotations

from dataclasses import dataclass


@dataclass
class CredentialPair:
    access_token: str
    refresh_token: str | None = None
