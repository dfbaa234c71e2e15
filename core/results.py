from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

OK = "OK"
INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
NOT_FOUND = "NOT_FOUND"
INVARIANT_VIOLATION = "INVARIANT_VIOLATION"


@dataclass
class LedgerResult:
    status: str = OK
    message: str = ""
    entity: Any = None

    @property
    def ok(self) -> bool:
        return self.status == OK


def not_found(message: str) -> LedgerResult:
    return LedgerResult(status=NOT_FOUND, message=message)


def violation(message: str) -> LedgerResult:
    return LedgerResult(status=INVARIANT_VIOLATION, message=message)


@dataclass
class WithdrawalResult:
    material_name: str
    requested: float
    deducted: float
    movement: Optional[Any] = None

    @property
    def shortfall(self) -> float:
        return max(0.0, float(self.requested) - float(self.deducted))

    @property
    def status(self) -> str:
        return INSUFFICIENT_STOCK if self.shortfall > 0 else OK

    @property
    def ok(self) -> bool:
        return self.status == OK


@dataclass
class StockUpdateOutcome:
    lot_id: str
    line_id: str
    status: str = OK
    message: str = ""


@dataclass
class BulkUpdateResult:
    outcomes: list[StockUpdateOutcome] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(o.status == OK for o in self.outcomes)

    @property
    def applied(self) -> int:
        return sum(1 for o in self.outcomes if o.status == OK)

    @property
    def rejected(self) -> list[StockUpdateOutcome]:
        return [o for o in self.outcomes if o.status != OK]
