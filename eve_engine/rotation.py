"""Credential failover across quota exhaustion."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Sequence, TypeVar

from .errors import ClassifiedError
from .models import Credential

T = TypeVar("T")


@dataclass
class Attempt(Generic[T]):
    """Outcome of one send: a value on success, or the classified failure."""

    value: T | None = None
    error: ClassifiedError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class DispatchOutcome(Generic[T]):
    attempt: Attempt[T]
    attempts: int
    exhausted: bool
    credential: Credential


def next_credential_index(count: int, current_index: int, attempts: int) -> int | None:
    """Cyclic successor of `current_index`, or None once `attempts` has reached `count`."""
    if count <= 0 or attempts >= count:
        return None
    return (current_index + 1) % count


def resolve_start_index(credentials: Sequence[Credential], start_id: str | None) -> int:
    for idx, credential in enumerate(credentials):
        if credential.id == start_id:
            return idx
    return 0


async def dispatch(
    send: Callable[[Credential], Awaitable[Attempt[T]]],
    credentials: Sequence[Credential],
    start_id: str | None,
    on_switch: Callable[[Credential, Credential], None] | None = None,
) -> DispatchOutcome[T]:
    """Run `send` against the start credential, moving on only for quota failures.

    Attempts are strictly sequential and bounded by the number of credentials.
    `on_switch(previous, next)` fires as soon as a switch is decided.
    """
    if not credentials:
        raise ValueError("dispatch requires at least one credential")
    index = resolve_start_index(credentials, start_id)
    attempts = 0
    while True:
        credential = credentials[index]
        attempt = await send(credential)
        attempts += 1
        if attempt.ok or not attempt.error.is_quota:
            return DispatchOutcome(attempt, attempts, False, credential)
        nxt = next_credential_index(len(credentials), index, attempts)
        if nxt is None:
            return DispatchOutcome(attempt, attempts, len(credentials) > 1, credential)
        if on_switch is not None:
            on_switch(credential, credentials[nxt])
        index = nxt
