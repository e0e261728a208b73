from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from .errors import GenerationFailed, GenerationTimeoutError


log = logging.getLogger(__name__)

TERMINAL_STATUSES = frozenset({"succeeded", "failed", "canceled"})

_LOGS_TAIL = 2000


@dataclass(frozen=True)
class RetryPolicy:
    interval_s: float = 1.5
    max_attempts: int = 80


@dataclass
class RemoteJob:
    id: str
    status: str
    output: Any = None
    logs: str | None = None
    error: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "RemoteJob":
        err = payload.get("error")
        return cls(
            id=str(payload.get("id") or ""),
            status=str(payload.get("status") or "starting"),
            output=payload.get("output"),
            logs=payload.get("logs"),
            error=str(err) if err else None,
        )


def _logs_tail(logs: str | None) -> str | None:
    if not logs:
        return logs
    return logs[-_LOGS_TAIL:]


async def poll_until_terminal(
    job: RemoteJob,
    fetch: Callable[[str], Awaitable[RemoteJob]],
    policy: RetryPolicy,
    *,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> RemoteJob:
    """Re-fetch ``job`` every ``policy.interval_s`` until it reaches a terminal state.

    At most ``policy.max_attempts`` status checks are made. Returns the job when it
    succeeded; raises GenerationFailed for failed/canceled and GenerationTimeoutError
    when the bound is exhausted.
    """
    current = job
    attempts = 0
    while not current.is_terminal and attempts < policy.max_attempts:
        await sleep(policy.interval_s)
        attempts += 1
        previous = current.status
        current = await fetch(current.id)
        if current.status != previous:
            log.info("job %s: %s -> %s (attempt %d)", current.id, previous, current.status, attempts)

    if not current.is_terminal:
        log.warning("job %s still %s after %d attempts", current.id, current.status, attempts)
        raise GenerationTimeoutError(
            f"Generation timed out (last status: {current.status})",
            status=current.status,
            attempts=attempts,
        )

    if current.status != "succeeded":
        log.warning("job %s ended %s: %s", current.id, current.status, current.error)
        raise GenerationFailed(
            "Generation failed",
            status=current.status,
            logs=_logs_tail(current.logs),
            detail=current.error,
        )
    return current
