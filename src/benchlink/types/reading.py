"""Tagged results for decoded instrument replies."""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Generic, TypeVar

T = TypeVar("T")


class ReadStatus(Enum):
    OK = auto()
    EMPTY = auto()  # instrument said nothing before the read budget ran out
    INVALID = auto()  # reply did not parse as the requested type


@dataclass(frozen=True)
class Reading(Generic[T]):
    """A decoded reply and how it was obtained.

    `value` always holds something of the requested type: the type's sentinel
    (False, INT_SENTINEL, NaN, "") whenever `status` is not OK.
    """

    value: T
    status: ReadStatus = ReadStatus.OK

    @property
    def ok(self) -> bool:
        return self.status is ReadStatus.OK

    @property
    def empty(self) -> bool:
        return self.status is ReadStatus.EMPTY
