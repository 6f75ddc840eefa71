from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx


class RequestState(str, Enum):
    IDLE = "idle"
    SENDING = "sending"
    AWAITING_REFRESH = "awaiting_refresh"
    REPLAYING = "replaying"
    DONE = "done"
    FAILED = "failed"


ALLOWED_TRANSITIONS: dict[RequestState, frozenset[RequestState]] = {
    RequestState.IDLE: frozenset({RequestState.SENDING, RequestState.FAILED}),
    RequestState.SENDING: frozenset(
        {RequestState.DONE, RequestState.FAILED, RequestState.AWAITING_REFRESH}
    ),
    RequestState.AWAITING_REFRESH: frozenset({RequestState.REPLAYING, RequestState.FAILED}),
    RequestState.REPLAYING: frozenset({RequestState.DONE, RequestState.FAILED}),
    RequestState.DONE: frozenset(),
    RequestState.FAILED: frozenset(),
}


@dataclass
class PendingRequest:
    """One logical call, from first send to its final outcome.

    ``retried`` flips once, when a 401 triggers the refresh-and-replay
    path; a request with ``retried`` set never refreshes again.
    """

    method: str
    url: str
    params: Any = None
    headers: dict[str, str] = field(default_factory=dict)
    json: Any = None
    data: Any = None
    files: Any = None
    content: Any = None
    timeout: Any = httpx.USE_CLIENT_DEFAULT
    authenticated: bool = True
    refresh_on_401: bool = True
    retried: bool = False
    state: RequestState = RequestState.IDLE

    def transition(self, new_state: RequestState) -> None:
        if new_state not in ALLOWED_TRANSITIONS[self.state]:
            raise RuntimeError(
                f"Invalid request state transition {self.state.value} -> {new_state.value} "
                f"({self.method} {self.url})"
            )
        self.state = new_state

    @property
    def can_refresh(self) -> bool:
        return self.refresh_on_401 and not self.retried
