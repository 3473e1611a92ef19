"""Result cardinality: "exactly one row" versus "all rows"."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class SingleRowResult(Generic[T]):
    """
    Either the single row or the caller's error.

    Usage::

        result = single_row(rows, PetNotFoundError(pet_id))
        if result.is_ok:
            pet = result.value
        pet = result.unwrap()  # raises PetNotFoundError otherwise
    """

    value: T | None = None
    error: BaseException | None = None
    row_count: int = 0

    @property
    def is_ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]

    def __bool__(self) -> bool:
        return self.is_ok


def single_row(rows: Sequence[T], error: BaseException) -> SingleRowResult[T]:
    """Wrap *rows* as a single-row result; any count but one carries *error*."""
    if len(rows) != 1:
        return SingleRowResult(error=error, row_count=len(rows))
    return SingleRowResult(value=rows[0], row_count=1)


def exactly_one_result(rows: Sequence[T], error: BaseException) -> T:
    """
    Return the only element of *rows*.

    Raises:
        The caller-supplied *error*, unchanged, when *rows* is empty or
        holds more than one element.
    """
    return single_row(rows, error).unwrap()
