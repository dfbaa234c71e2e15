"""
Finished-goods stock, derived from production lots and dispatch history.

Nothing here is stored: availability is the set difference between every
output line and what dispatches consumed, recomputed on each read.

A line is consumed when
  - its folio appears in some dispatch's `dispatched_folios`, or
  - its lot appears in the `lot_ids` of a legacy dispatch (one recorded with no
    folios at all). This covers every line the lot holds now, including lines
    moved into it after that dispatch.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from core import store
from core.models import Dispatch, ProductionLot
from core.services.production import StockLineRef
from core.services.workcenter import WorkCenterContext

logger = logging.getLogger(__name__)

NO_FOLIO = "S/N"


@dataclass
class StockLine:
    ref: StockLineRef
    lot_id: str
    manual_folio: str
    format_name: str
    producer: str
    variety: str
    date: str
    units: int
    pallets: int
    weight_per_unit: float
    kilos: float
    is_full_pallet: bool
    production_line: str = ""

    @property
    def group_key(self) -> str:
        # Lines without a folio never merge with each other.
        return self.manual_folio or f"{self.ref.lot_id}-{self.ref.line_id}"


@dataclass
class StockGroup:
    folio_key: str
    display_folio: str
    format_name: str
    total_units: int = 0
    total_pallets: int = 0
    total_kilos: float = 0.0
    is_full_pallet: bool = False
    lines: list[StockLine] = field(default_factory=list)

    @property
    def has_folio(self) -> bool:
        return self.display_folio != NO_FOLIO

    @property
    def is_mixed(self) -> bool:
        return len({(l.producer, l.variety, l.date) for l in self.lines}) > 1


@dataclass(frozen=True)
class DispatchExclusions:
    folios: frozenset
    legacy_lot_ids: frozenset

    def excludes(self, line: StockLine) -> bool:
        return line.lot_id in self.legacy_lot_ids or (bool(line.manual_folio) and line.manual_folio in self.folios)


def stock_lines(lots: Iterable[ProductionLot]) -> list[StockLine]:
    out: list[StockLine] = []
    for lot in lots:
        for d in lot.details:
            out.append(
                StockLine(
                    ref=StockLineRef(lot.id, d.line_id),
                    lot_id=lot.id,
                    manual_folio=d.manual_folio or "",
                    format_name=d.format_name,
                    producer=d.origin_producer or lot.lot_producer,
                    variety=d.origin_variety or lot.lot_variety,
                    date=d.origin_date or lot.created_at,
                    units=int(d.units),
                    pallets=int(d.pallets or 0),
                    weight_per_unit=float(d.weight_per_unit),
                    kilos=float(d.total_kilos),
                    is_full_pallet=bool(d.is_full_pallet),
                    production_line=d.production_line,
                )
            )
    return out


def dispatch_exclusions(dispatches: Iterable[Dispatch]) -> DispatchExclusions:
    folios: set[str] = set()
    legacy: set[str] = set()
    for d in dispatches:
        if d.is_legacy:
            legacy.update(d.lot_ids)
        else:
            folios.update(d.dispatched_folios)
    return DispatchExclusions(folios=frozenset(folios), legacy_lot_ids=frozenset(legacy))


def available_lines(lots: Iterable[ProductionLot], dispatches: Iterable[Dispatch]) -> list[StockLine]:
    exclusions = dispatch_exclusions(dispatches)
    lines = stock_lines(lots)
    available = [l for l in lines if not exclusions.excludes(l)]
    logger.debug("Stock recomputed: %d line(s), %d available", len(lines), len(available))
    return available


def dispatchable_pallets(lots: Iterable[ProductionLot], dispatches: Iterable[Dispatch]) -> list[StockLine]:
    """Available lines that carry a folio; only those can be put on a dispatch."""
    return [l for l in available_lines(lots, dispatches) if l.manual_folio]


def group_by_folio(lines: Iterable[StockLine]) -> list[StockGroup]:
    groups: dict[str, StockGroup] = {}
    for line in lines:
        key = line.group_key
        group = groups.get(key)
        if group is None:
            group = groups[key] = StockGroup(
                folio_key=key,
                display_folio=line.manual_folio or NO_FOLIO,
                format_name=line.format_name,
            )
        group.total_units += line.units
        group.total_pallets += line.pallets
        group.total_kilos += line.kilos
        group.is_full_pallet = group.is_full_pallet or line.is_full_pallet
        group.lines.append(line)
    return list(groups.values())


def _snapshot(conn, ctx: WorkCenterContext) -> tuple[list[ProductionLot], list[Dispatch]]:
    return ctx.visible(store.load(conn, store.LOTS)), ctx.visible(store.load(conn, store.DISPATCHES))


def finished_goods_stock(conn, ctx: WorkCenterContext) -> list[StockGroup]:
    lots, dispatches = _snapshot(conn, ctx)
    return group_by_folio(available_lines(lots, dispatches))


def available_pallets(conn, ctx: WorkCenterContext) -> list[StockLine]:
    lots, dispatches = _snapshot(conn, ctx)
    return dispatchable_pallets(lots, dispatches)


def stock_totals(groups: Iterable[StockGroup]) -> dict[str, float]:
    groups = list(groups)
    return {
        "kilos": sum(g.total_kilos for g in groups),
        "units": sum(g.total_units for g in groups),
        "pallets": sum(g.total_pallets for g in groups),
        "folios": sum(1 for g in groups if g.has_folio),
    }
