from __future__ import annotations

import json
import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import asdict
from pathlib import Path

from auth.models import CredentialPair


class TokenStore(ABC):
    """Holds at most one credential pair; ``set`` replaces the previous one."""

    @abstractmethod
    async def get(self) -> CredentialPair | None:
        raise NotImplementedError

    @abstractmethod
    async def set(self, credentials: CredentialPair) -> None:
        raise NotImplementedError

    @abstractmethod
    async def clear(self) -> None:
        raise NotImplementedError

    def peek(self) -> CredentialPair | None:
        """Synchronous read for callers that cannot await.

        Stores without a cheap synchronous read return ``None`` and are
        only consulted through ``get``.
        """
        return None


class MemoryTokenStore(TokenStore):
    def __init__(self) -> None:
        self._credentials: CredentialPair | None = None

    async def get(self) -> CredentialPair | None:
        return self._credentials

    async def set(self, credentials: CredentialPair) -> None:
        self._credentials = credentials

    async def clear(self) -> None:
        self._credentials = None

    def peek(self) -> CredentialPair | None:
        return self._credentials


class FileTokenStore(TokenStore):
    def __init__(self, path: str | Path = ".jobboard_tokens.json") -> None:
        self._path = Path(path)

    async def get(self) -> CredentialPair | None:
        return self.peek()

    async def set(self, credentials: CredentialPair) -> None:
        self._write(asdict(credentials))

    async def clear(self) -> None:
        if self._path.exists():
            self._path.unlink()

    def peek(self) -> CredentialPair | None:
        payload = self._read()
        if payload is None:
            return None
        access_token = payload.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            return None
        refresh_token = payload.get("refresh_token")
        if not isinstance(refresh_token, str) or not refresh_token:
            refresh_token = None
        return CredentialPair(access_token=access_token, refresh_token=refresh_token)

    def _read(self) -> dict | None:
        if not self._path.exists():
            return None

        raw = json.loads(self._path.read_text(encoding="utf-8"))
        if not isinstance(raw, dict):
            raise RuntimeError("Token store file is invalid; expected top-level JSON object.")
        return raw

    def _write(self, payload: dict) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            prefix=f"{self._path.name}.",
            suffix=".tmp",
            dir=self._path.parent,
        )
        tmp_path = Path(tmp_name)

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2, sort_keys=True)
            os.chmod(tmp_path, 0o600)
            os.replace(tmp_path, self._path)
        finally:
            if tmp_path.exists():
                tmp_path.unlink()
