"""
IQF by-product consolidation.

A lot's IQF kilos stay "loose" until a pallet consolidates them. Remaining
kilos per lot are computed from every existing pallet (any work center, any
status), so deleting a pallet is all it takes to give its kilos back.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Iterable, Optional

from core import store
from core.catalog import IQF_FOLIO_BASE
from core.models import DISPATCHED, PENDING, IqfPallet, IqfSourceItem, ProductionLot
from core.results import INSUFFICIENT_STOCK, LedgerResult, not_found, violation
from core.services.workcenter import WorkCenterContext
from core.utils import KILO_EPSILON, iso_now, new_id

logger = logging.getLogger(__name__)

LABEL_SEPARATOR = " + "


@dataclass
class IqfAvailability:
    lot_id: str
    total_generated: float
    remaining: float
    producer: str
    variety: str


def consolidated_kilos(pallets: Iterable[IqfPallet]) -> dict[str, float]:
    used: dict[str, float] = defaultdict(float)
    for pallet in pallets:
        for item in pallet.items:
            used[item.lot_id] += float(item.kilos)
    return dict(used)


def remaining_kilos(lot: ProductionLot, pallets: Iterable[IqfPallet]) -> float:
    remaining = float(lot.iqf_kilos) - consolidated_kilos(pallets).get(lot.id, 0.0)
    return remaining if remaining > KILO_EPSILON else 0.0


def iqf_availability(
    lots: Iterable[ProductionLot],
    pallets: Iterable[IqfPallet],
    *,
    include_empty: bool = False,
) -> list[IqfAvailability]:
    used = consolidated_kilos(pallets)
    out: list[IqfAvailability] = []
    for lot in lots:
        if float(lot.iqf_kilos) <= 0:
            continue
        remaining = float(lot.iqf_kilos) - used.get(lot.id, 0.0)
        if remaining <= KILO_EPSILON:
            remaining = 0.0
        if remaining <= 0 and not include_empty:
            continue
        out.append(
            IqfAvailability(
                lot_id=lot.id,
                total_generated=float(lot.iqf_kilos),
                remaining=remaining,
                producer=lot.lot_producer,
                variety=lot.lot_variety,
            )
        )
    return out


def next_iqf_folio(pallets: Iterable[IqfPallet]) -> str:
    best = IQF_FOLIO_BASE - 1
    for pallet in pallets:
        try:
            best = max(best, int(pallet.folio))
        except (TypeError, ValueError):
            continue
    return str(best + 1)


def join_labels(values: Iterable[str]) -> str:
    return LABEL_SEPARATOR.join(dict.fromkeys(v for v in values if v))


def list_iqf_pallets(conn, ctx: WorkCenterContext) -> list[IqfPallet]:
    return ctx.visible(store.load(conn, store.IQF_PALLETS))


def available_iqf(conn, ctx: WorkCenterContext, *, include_empty: bool = False) -> list[IqfAvailability]:
    lots = ctx.visible(store.load(conn, store.LOTS))
    return iqf_availability(lots, store.load(conn, store.IQF_PALLETS), include_empty=include_empty)


def create_iqf_pallet(
    conn,
    ctx: WorkCenterContext,
    lot_ids: Iterable[str],
    *,
    trays: int = 0,
    creation_date: Optional[str] = None,
) -> LedgerResult:
    """Consolidates everything still loose in the selected lots into one pallet."""
    selected = list(dict.fromkeys(lot_ids))
    if not selected:
        raise ValueError("Select at least one lot.")

    pallets = store.load(conn, store.IQF_PALLETS)
    lots = {lot.id: lot for lot in ctx.visible(store.load(conn, store.LOTS))}
    missing = [lot_id for lot_id in selected if lot_id not in lots]
    if missing:
        return not_found(f"Lot(s) not found: {', '.join(missing)}")

    sources = [a for a in iqf_availability([lots[i] for i in selected], pallets) if a.remaining > KILO_EPSILON]
    if not sources:
        logger.warning("No loose IQF kilos in lots %s", ", ".join(selected))
        return LedgerResult(status=INSUFFICIENT_STOCK, message="Selected lots have no IQF kilos left.")

    pallet = ctx.stamp(
        IqfPallet(
            id=new_id("IQF"),
            folio=next_iqf_folio(pallets),
            creation_date=creation_date or iso_now(),
            items=[
                IqfSourceItem(lot_id=s.lot_id, kilos=s.remaining, producer=s.producer, variety=s.variety)
                for s in sources
            ],
            total_kilos=sum(s.remaining for s in sources),
            trays=int(trays),
            status=PENDING,
            formatted_producer=join_labels(s.producer for s in sources),
            formatted_variety=join_labels(s.variety for s in sources),
        )
    )
    pallets.append(pallet)
    store.save(conn, store.IQF_PALLETS, pallets)
    logger.info("IQF pallet %s created in %s: %.2f kg from %d lot(s)", pallet.folio, pallet.work_center, pallet.total_kilos, len(sources))
    return LedgerResult(entity=pallet)


def _find_pending(pallets: list[IqfPallet], ctx: WorkCenterContext, pallet_id: str) -> tuple[Optional[IqfPallet], Optional[LedgerResult]]:
    pallet = next((p for p in pallets if p.id == pallet_id and ctx.includes(p.work_center)), None)
    if pallet is None:
        return None, not_found(f"IQF pallet {pallet_id} not found.")
    if pallet.status == DISPATCHED:
        return None, violation(f"IQF pallet {pallet.folio} was already dispatched.")
    return pallet, None


def update_iqf_pallet(
    conn,
    ctx: WorkCenterContext,
    pallet_id: str,
    *,
    formatted_producer: Optional[str] = None,
    formatted_variety: Optional[str] = None,
    trays: Optional[int] = None,
) -> LedgerResult:
    """Edits the free-text labels (and tray count); the consolidated items never change."""
    pallets = store.load(conn, store.IQF_PALLETS)
    pallet, error = _find_pending(pallets, ctx, pallet_id)
    if error is not None:
        logger.warning("IQF pallet %s edit rejected: %s", pallet_id, error.message)
        return error

    if formatted_producer is not None:
        pallet.formatted_producer = formatted_producer
    if formatted_variety is not None:
        pallet.formatted_variety = formatted_variety
    if trays is not None:
        pallet.trays = int(trays)
    store.save(conn, store.IQF_PALLETS, pallets)
    logger.info("IQF pallet %s updated", pallet.folio)
    return LedgerResult(entity=pallet)


def remove_iqf_pallet(conn, ctx: WorkCenterContext, pallet_id: str) -> LedgerResult:
    """Breaks up a pallet; its kilos become loose again in their source lots."""
    pallets = store.load(conn, store.IQF_PALLETS)
    pallet, error = _find_pending(pallets, ctx, pallet_id)
    if error is not None:
        logger.warning("IQF pallet %s removal rejected: %s", pallet_id, error.message)
        return error

    pallets.remove(pallet)
    store.save(conn, store.IQF_PALLETS, pallets)
    logger.info("IQF pallet %s removed; %.2f kg back to loose stock", pallet.folio, pallet.total_kilos)
    return LedgerResult(entity=pallet)


def dispatch_iqf_pallets(conn, ctx: WorkCenterContext, pallet_ids: Iterable[str], guide: str) -> LedgerResult:
    guide = str(guide or "").strip()
    if not guide:
        raise ValueError("Dispatch guide is required.")

    ids = set(pallet_ids)
    pallets = store.load(conn, store.IQF_PALLETS)
    shipped = [p for p in pallets if p.id in ids and ctx.includes(p.work_center) and p.status == PENDING]
    if not shipped:
        return not_found("No pending IQF pallets selected.")

    for p in shipped:
        p.status = DISPATCHED
        p.dispatch_guide = guide
    store.save(conn, store.IQF_PALLETS, pallets)

    skipped = len(ids) - len(shipped)
    logger.info("Dispatched %d IQF pallet(s) with guide %s (%d skipped)", len(shipped), guide, skipped)
    return LedgerResult(entity=shipped, message=f"{skipped} pallet(s) skipped" if skipped else "")
