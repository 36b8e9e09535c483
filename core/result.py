from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Literal, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class StoreError:
    error_code: str
    message: str


@dataclass(frozen=True)
class OrderStateTransitionError(StoreError):
    from_state: str
    to_state: str


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T
    ok: Literal[True] = True


@dataclass(frozen=True)
class Err:
    error: StoreError
    ok: Literal[False] = False


# Callers branch on `result.ok`, never on the type of the payload.
Result = Union[Ok[T], Err]
