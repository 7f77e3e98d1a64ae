"""Value types shared by the reconciliation engine."""

from dataclasses import dataclass, field
from typing import NamedTuple


@dataclass(frozen=True)
class RowRange:
    """Inclusive, 1-based slice of the target table's key ordering."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 1:
            raise ValueError(f"Range start must be >= 1, got {self.start}")
        if self.end < self.start:
            raise ValueError(
                f"Range end must be >= start, got start={self.start}, end={self.end}"
            )

    @property
    def size(self) -> int:
        return self.end - self.start + 1

    def __str__(self) -> str:
        return f"[{self.start}, {self.end}]"


@dataclass(frozen=True)
class TargetRecord:
    """One row of the target table: an organization key and its joined domains."""

    key: str
    actual_value: str


class ResultRow(NamedTuple):
    """One detected discrepancy, in report column order."""

    key: str
    actual_value: str
    expected_value: str


RESULT_HEADER = ("KEY", "ACTUAL VALUE", "EXPECTED VALUE")


@dataclass
class RunSummary:
    """Outcome of one coordinator run."""

    total_records: int = 0
    ranges: list[RowRange] = field(default_factory=list)
    failed_ranges: list[RowRange] = field(default_factory=list)
    rows_written: int = 0
    interrupted: bool = False
    duration_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return not self.interrupted and not self.failed_ranges
