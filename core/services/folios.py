"""
Pallet folio sequencing for reception entry.

Folio format: {SEQUENCE:04d}-{PRODUCER_CODE}, e.g. 0007-4052. The sequence is
per producer code and continues from the highest one already used by any
persisted or staged pallet carrying that code. Pallets staged before a
producer is chosen carry the PENDING placeholder code and are re-keyed when
the producer is set.

Uniqueness holds for a single entry session; two sessions staging pallets for
the same producer at the same time can still collide.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Optional

from core.catalog import PALLET_CLASSIFICATIONS, PRODUCERS
from core.models import PalletDetail, Reception

PENDING_CODE = "PENDING"


def producer_code(producer_name: Optional[str]) -> str:
    name = str(producer_name or "").strip()
    for prod_name, code in PRODUCERS:
        if prod_name == name:
            return code
    return PENDING_CODE


def format_folio(sequence: int, code: str) -> str:
    return f"{int(sequence):04d}-{code}"


def split_folio(folio: str) -> tuple[Optional[int], str]:
    """Returns (sequence, code) or (None, "") when the folio isn't SEQUENCE-CODE."""
    parts = str(folio).split("-")
    if len(parts) != 2:
        return None, ""
    try:
        return int(parts[0]), parts[1]
    except ValueError:
        return None, parts[1]


def max_sequence(folios: Iterable[str], code: str) -> int:
    best = 0
    for folio in folios:
        seq, suffix = split_folio(folio)
        if seq is not None and suffix == code and seq > best:
            best = seq
    return best


def reception_folios(receptions: Iterable[Reception]) -> list[str]:
    return [p.folio for r in receptions for p in r.pallet_details]


def next_sequence(history: Iterable[str], staged: Iterable[str], code: str) -> int:
    return max(max_sequence(history, code), max_sequence(staged, code)) + 1


@dataclass
class PalletEntrySession:
    """Pallets staged for one reception before it is submitted."""

    history: list[str] = field(default_factory=list)
    producer: str = ""
    staged: list[PalletDetail] = field(default_factory=list)
    sequence: int = 1

    @classmethod
    def start(cls, receptions: Iterable[Reception], producer: str = "") -> "PalletEntrySession":
        session = cls(history=reception_folios(receptions))
        session.set_producer(producer)
        return session

    @property
    def code(self) -> str:
        return producer_code(self.producer)

    @property
    def folios(self) -> list[str]:
        return [p.folio for p in self.staged]

    def set_producer(self, producer: str) -> None:
        self.producer = str(producer or "").strip()
        code = self.code
        if code != PENDING_CODE:
            self._rekey_pending(code)
        self.sequence = next_sequence(self.history, self.folios, code)

    def _rekey_pending(self, code: str) -> None:
        taken = set(self.history) | {f for f in self.folios if split_folio(f)[1] != PENDING_CODE}
        fallback = next_sequence(self.history, taken, code)
        for pallet in self.staged:
            seq, suffix = split_folio(pallet.folio)
            if suffix != PENDING_CODE:
                continue
            candidate = format_folio(seq, code) if seq else ""
            while not candidate or candidate in taken:
                candidate = format_folio(fallback, code)
                fallback += 1
            pallet.folio = candidate
            taken.add(candidate)

    def add_pallets(
        self,
        weight: float,
        trays: int,
        quantity: int = 1,
        classification: str = "PROCESO",
    ) -> list[PalletDetail]:
        if float(weight) <= 0:
            raise ValueError("Pallet weight must be > 0.")
        if classification not in PALLET_CLASSIFICATIONS:
            raise ValueError(f"Unknown pallet classification: {classification}")
        if int(trays) < 0:
            raise ValueError("Trays cannot be negative.")
        qty = max(1, int(quantity))
        code = self.code

        start = max(self.sequence, next_sequence(self.history, self.folios, code))
        created = [
            PalletDetail(
                folio=format_folio(start + i, code),
                weight=float(weight),
                trays=int(trays),
                classification=classification,
            )
            for i in range(qty)
        ]
        self.staged.extend(created)
        self.sequence = start + qty
        return created

    def remove(self, indices: Iterable[int]) -> None:
        drop = set(int(i) for i in indices)
        self.staged = [p for i, p in enumerate(self.staged) if i not in drop]


def next_lot_id(lot_ids: Iterable[str], day: Optional[date] = None) -> str:
    """PROC-YYYYMMDD-NNN, NNN continuing from the highest sequence used that day."""
    ymd = (day or date.today()).strftime("%Y%m%d")
    best = 0
    for lot_id in lot_ids:
        parts = str(lot_id).split("-")
        if len(parts) >= 3 and parts[1] == ymd:
            try:
                best = max(best, int(parts[2]))
            except ValueError:
                continue
    return f"PROC-{ymd}-{best + 1:03d}"
