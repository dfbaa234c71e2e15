"""
Production lots and the finished-goods reallocation protocol.

Output lines are addressed by (lot id, line id). Line ids are stable across
moves, so several updates in one batch can touch lines of the same lot without
one splice shifting the address of the next.
"""
from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, replace
from typing import Iterable, Optional

from core import store
from core.db import transaction
from core.models import ProductionDetail, ProductionLot
from core.results import (
    INVARIANT_VIOLATION,
    NOT_FOUND,
    OK,
    BulkUpdateResult,
    LedgerResult,
    StockUpdateOutcome,
    not_found,
    violation,
)
from core.services.materials import remove_material
from core.services.receptions import mark_pallets_consumed
from core.services.workcenter import WorkCenterContext
from core.utils import iso_now, new_line_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StockLineRef:
    lot_id: str
    line_id: str


@dataclass
class StockUpdate:
    """
    One reallocation instruction for an output line.

    delete: drop the line.
    split: leave the source line alone and add a new line (same format, weight
        per box and origin) to `target_lot_id` with the given fields.
    otherwise: rewrite the line in place, or move it when `target_lot_id`
        names another lot.
    """

    source: StockLineRef
    target_lot_id: str
    manual_folio: str = ""
    units: int = 0
    pallets: int = 0
    is_full_pallet: bool = False
    delete: bool = False
    split: bool = False


def list_lots(conn, ctx: WorkCenterContext) -> list[ProductionLot]:
    return ctx.visible(store.load(conn, store.LOTS))


def get_lot(conn, ctx: WorkCenterContext, lot_id: str) -> Optional[ProductionLot]:
    return next((lot for lot in list_lots(conn, ctx) if lot.id == lot_id), None)


def _prepare_lot(lot: ProductionLot) -> None:
    for d in lot.details:
        if not d.line_id:
            d.line_id = new_line_id()
        if not d.origin_lot_id:
            d.origin_lot_id = lot.id
        d.recompute()
    lot.recompute_totals()


def create_lot(
    conn,
    ctx: WorkCenterContext,
    lot: ProductionLot,
    material_name: Optional[str] = None,
    boxes_used: float = 0,
) -> LedgerResult:
    """
    Records a production run and marks the reception pallets it consumed.
    When `boxes_used` > 0 the packaging material is withdrawn FIFO; the
    withdrawal outcome is reported in the message when stock fell short.
    The lot, the reception flags and the withdrawal are committed together.
    """
    if not lot.id:
        raise ValueError("Lot id is required.")

    result = LedgerResult()
    with transaction(conn):
        lots = store.load(conn, store.LOTS)
        if any(existing.id == lot.id for existing in lots):
            return violation(f"Lot {lot.id} already exists.")

        new_lot = ctx.stamp(copy.deepcopy(lot))
        if not new_lot.created_at:
            new_lot.created_at = iso_now()
        _prepare_lot(new_lot)

        lots.append(new_lot)
        store.save(conn, store.LOTS, lots)

        receptions = store.load(conn, store.RECEPTIONS)
        processed = mark_pallets_consumed(
            [r for r in receptions if ctx.includes(r.work_center)],
            new_lot.reception_ids,
            new_lot.used_pallet_folios,
        )
        store.save(conn, store.RECEPTIONS, receptions)

        result.entity = new_lot
        if material_name and float(boxes_used) > 0:
            withdrawal = remove_material(conn, ctx, material_name, boxes_used, f"Production lot {new_lot.id}")
            if not withdrawal.ok:
                result.message = f"{material_name}: short by {withdrawal.shortfall:g}"

    logger.info(
        "Lot %s created in %s: %.2f kg produced, yield %.1f%%, receptions processed: %s",
        new_lot.id,
        new_lot.work_center,
        new_lot.produced_kilos,
        new_lot.yield_percentage,
        ", ".join(processed) or "-",
    )
    return result


def update_lot(conn, ctx: WorkCenterContext, lot: ProductionLot) -> LedgerResult:
    lots = store.load(conn, store.LOTS)
    idx = next((i for i, existing in enumerate(lots) if existing.id == lot.id and ctx.includes(existing.work_center)), None)
    if idx is None:
        logger.warning("Lot %s not found for update in %s", lot.id, ctx.active)
        return not_found(f"Lot {lot.id} not found.")

    updated = replace(copy.deepcopy(lot), work_center=lots[idx].work_center)
    _prepare_lot(updated)
    lots[idx] = updated
    store.save(conn, store.LOTS, lots)
    logger.info("Lot %s updated", updated.id)
    return LedgerResult(entity=updated)


def _apply_fields(detail: ProductionDetail, update: StockUpdate) -> None:
    detail.manual_folio = update.manual_folio
    detail.units = int(update.units)
    detail.pallets = int(update.pallets)
    detail.is_full_pallet = bool(update.is_full_pallet)
    detail.recompute()


def _apply_update(lots_by_id: dict[str, ProductionLot], update: StockUpdate) -> StockUpdateOutcome:
    ref = update.source
    outcome = StockUpdateOutcome(lot_id=ref.lot_id, line_id=ref.line_id)

    source = lots_by_id.get(ref.lot_id)
    detail = source.find_detail(ref.line_id) if source is not None else None
    if detail is None:
        outcome.status = NOT_FOUND
        outcome.message = f"Line {ref.line_id} not found in lot {ref.lot_id}."
        return outcome

    if update.delete:
        source.details.remove(detail)
        source.recompute_totals()
        return outcome

    if int(update.units) < 0 or int(update.pallets) < 0:
        outcome.status = INVARIANT_VIOLATION
        outcome.message = "Units and pallets cannot be negative."
        return outcome

    target_id = update.target_lot_id or source.id
    target = lots_by_id.get(target_id)
    if target is None:
        outcome.status = NOT_FOUND
        outcome.message = f"Target lot {target_id} not found."
        return outcome

    if update.split:
        new_detail = replace(detail, line_id=new_line_id())
        _apply_fields(new_detail, update)
        target.details.append(new_detail)
        target.recompute_totals()
    elif target is not source:
        source.details.remove(detail)
        _apply_fields(detail, update)
        target.details.append(detail)
        source.recompute_totals()
        target.recompute_totals()
    else:
        _apply_fields(detail, update)
        source.recompute_totals()
    return outcome


def bulk_update_stock_items(conn, ctx: WorkCenterContext, updates: Iterable[StockUpdate]) -> BulkUpdateResult:
    """
    Applies reallocation updates in order over a copy of the lots and publishes
    the result in one write. Each update stands alone: a rejected update leaves
    its line untouched and the rest still apply.
    """
    lots = copy.deepcopy(store.load(conn, store.LOTS))
    lots_by_id = {lot.id: lot for lot in lots if ctx.includes(lot.work_center)}

    result = BulkUpdateResult()
    for update in updates:
        outcome = _apply_update(lots_by_id, update)
        if outcome.status != OK:
            logger.warning("Stock update on %s/%s rejected: %s", outcome.lot_id, outcome.line_id, outcome.message)
        result.outcomes.append(outcome)

    if result.applied:
        store.save(conn, store.LOTS, lots)
    logger.info("Bulk stock update in %s: %d applied, %d rejected", ctx.active, result.applied, len(result.rejected))
    return result


def transfer_updates(source_line, target_line, quantity: int) -> list[StockUpdate]:
    """
    Moves `quantity` boxes from one stock line onto another line's pallet:
    shrinks the source and adds a split-off line under the target's folio and
    lot. Lines are stock-view rows (see core.services.stock.StockLine).
    """
    qty = int(quantity)
    if source_line.ref == target_line.ref:
        raise ValueError("Source and target must be different lines.")
    if qty <= 0:
        raise ValueError("Quantity to transfer must be > 0.")
    if qty > int(source_line.units):
        raise ValueError(f"Quantity exceeds the source line ({source_line.units}).")

    return [
        StockUpdate(
            source=source_line.ref,
            target_lot_id=source_line.lot_id,
            manual_folio=source_line.manual_folio,
            units=int(source_line.units) - qty,
            pallets=int(source_line.pallets),
            is_full_pallet=bool(source_line.is_full_pallet),
        ),
        StockUpdate(
            source=source_line.ref,
            target_lot_id=target_line.lot_id,
            manual_folio=target_line.manual_folio,
            units=qty,
            pallets=0,
            is_full_pallet=False,
            split=True,
        ),
    ]


def delete_folio(conn, ctx: WorkCenterContext, folio: str) -> BulkUpdateResult:
    """Deletes every output line carrying `folio` across the visible lots."""
    folio = str(folio).strip()
    if not folio:
        raise ValueError("Folio is required.")
    updates = [
        StockUpdate(source=StockLineRef(lot.id, d.line_id), target_lot_id=lot.id, manual_folio=folio, delete=True)
        for lot in list_lots(conn, ctx)
        for d in lot.details
        if d.manual_folio == folio
    ]
    if not updates:
        logger.warning("Folio %s not found in %s", folio, ctx.active)
        return BulkUpdateResult()
    logger.info("Deleting folio %s (%d line(s)) in %s", folio, len(updates), ctx.active)
    return bulk_update_stock_items(conn, ctx, updates)
