"""Tagged results returned by report operations.

Every service call returns ``Ok(value)`` or ``Err(failure)``. The failure
variants stay distinct so callers and tests can see the precise cause; only the
HTTP boundary collapses them into a single client-facing rejection.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class ValidationFailure:
    field: str
    code: str = "validation_failed"


@dataclass(frozen=True, slots=True)
class NotFound:
    report_id: str
    code: str = "not_found"


@dataclass(frozen=True, slots=True)
class NotAuthorized:
    reason: str
    code: str = "not_authorized"


@dataclass(frozen=True, slots=True)
class StoreFailure:
    operation: str
    client_fault: bool
    code: str = "store_error"


Failure = Union[ValidationFailure, NotFound, NotAuthorized, StoreFailure]


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True, slots=True)
class Err:
    failure: Failure


Result = Union[Ok[T], Err]


def is_client_error(failure: Failure) -> bool:
    if isinstance(failure, StoreFailure):
        return failure.client_fault
    return True
