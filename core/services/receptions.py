from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Iterable

from core import store
from core.catalog import PALLET_CLASSIFICATIONS
from core.models import PENDING, PROCESSED, PalletDetail, Reception
from core.results import LedgerResult, not_found, violation
from core.services.tare import net_weight
from core.services.workcenter import WorkCenterContext
from core.utils import iso_now, new_id

logger = logging.getLogger(__name__)


@dataclass
class PalletPart:
    weight: float
    trays: int
    classification: str = "PROCESO"


def apply_pallet_totals(rec: Reception, *, pallets: int | None = None) -> Reception:
    """
    Re-derives the aggregate weight fields. With per-pallet detail, gross weight
    and trays are the sums over the pallets; net weight always follows the tare
    formula.
    """
    if rec.pallet_details:
        rec.gross_weight = sum(float(p.weight) for p in rec.pallet_details)
        rec.trays = sum(int(p.trays) for p in rec.pallet_details)
    if pallets is not None:
        rec.pallets = int(pallets)
    rec.net_weight = net_weight(rec.gross_weight, rec.trays, rec.pallets)
    return rec


def list_receptions(conn, ctx: WorkCenterContext) -> list[Reception]:
    return ctx.visible(store.load(conn, store.RECEPTIONS))


def get_reception(conn, ctx: WorkCenterContext, reception_id: str) -> Reception | None:
    return next((r for r in list_receptions(conn, ctx) if r.id == reception_id), None)


def available_receptions(conn, ctx: WorkCenterContext) -> list[Reception]:
    """Receptions production can still draw from."""
    return [
        r
        for r in list_receptions(conn, ctx)
        if r.status == PENDING or any(not p.is_used for p in r.pallet_details)
    ]


def add_reception(conn, ctx: WorkCenterContext, reception: Reception) -> LedgerResult:
    receptions = store.load(conn, store.RECEPTIONS)

    rec = ctx.stamp(reception)
    if not rec.id:
        rec = replace(rec, id=new_id("REC"))
    if any(r.id == rec.id for r in receptions):
        return violation(f"Reception {rec.id} already exists.")
    if not rec.reception_date:
        rec.reception_date = iso_now()

    folios = [p.folio for p in rec.pallet_details]
    if len(set(folios)) != len(folios):
        return violation(f"Reception {rec.id} repeats pallet folios.")

    apply_pallet_totals(rec, pallets=len(rec.pallet_details) if rec.pallet_details else None)

    receptions.append(rec)
    store.save(conn, store.RECEPTIONS, receptions)
    logger.info("Reception %s added (%s, %.2f kg net)", rec.id, rec.work_center, rec.net_weight)
    return LedgerResult(entity=rec)


def update_reception(conn, ctx: WorkCenterContext, reception: Reception) -> LedgerResult:
    receptions = store.load(conn, store.RECEPTIONS)
    idx = next((i for i, r in enumerate(receptions) if r.id == reception.id and ctx.includes(r.work_center)), None)
    if idx is None:
        logger.warning("Reception %s not found for update in %s", reception.id, ctx.active)
        return not_found(f"Reception {reception.id} not found.")

    # Updates never move a record to another work center.
    rec = replace(reception, work_center=receptions[idx].work_center)
    apply_pallet_totals(rec)
    receptions[idx] = rec
    store.save(conn, store.RECEPTIONS, receptions)
    logger.info("Reception %s updated", rec.id)
    return LedgerResult(entity=rec)


def _edit_reception(conn, ctx: WorkCenterContext, reception_id: str, edit) -> LedgerResult:
    receptions = store.load(conn, store.RECEPTIONS)
    rec = next((r for r in receptions if r.id == reception_id and ctx.includes(r.work_center)), None)
    if rec is None:
        return not_found(f"Reception {reception_id} not found.")
    result = edit(rec)
    if not result.ok:
        logger.warning("Reception %s edit rejected: %s", reception_id, result.message)
        return result
    store.save(conn, store.RECEPTIONS, receptions)
    return LedgerResult(entity=rec)


def update_reception_pallet(
    conn,
    ctx: WorkCenterContext,
    reception_id: str,
    folio: str,
    *,
    weight: float,
    trays: int,
    classification: str,
) -> LedgerResult:
    if classification not in PALLET_CLASSIFICATIONS:
        raise ValueError(f"Unknown pallet classification: {classification}")

    def edit(rec: Reception) -> LedgerResult:
        pallet = rec.find_pallet(folio)
        if pallet is None:
            return not_found(f"Pallet {folio} not found in reception {reception_id}.")
        pallet.weight = float(weight)
        pallet.trays = int(trays)
        pallet.classification = classification
        apply_pallet_totals(rec)
        return LedgerResult()

    return _edit_reception(conn, ctx, reception_id, edit)


def split_reception_pallet(
    conn,
    ctx: WorkCenterContext,
    reception_id: str,
    folio: str,
    part1: PalletPart,
    part2: PalletPart,
) -> LedgerResult:
    """Replaces one pallet by two: the original folio and folio-B."""
    for part in (part1, part2):
        if part.classification not in PALLET_CLASSIFICATIONS:
            raise ValueError(f"Unknown pallet classification: {part.classification}")

    def edit(rec: Reception) -> LedgerResult:
        idx = next((i for i, p in enumerate(rec.pallet_details) if p.folio == folio), None)
        if idx is None:
            return not_found(f"Pallet {folio} not found in reception {reception_id}.")
        split_folio = f"{folio}-B"
        if rec.find_pallet(split_folio) is not None:
            return violation(f"Pallet {split_folio} already exists.")

        rec.pallet_details[idx : idx + 1] = [
            PalletDetail(folio=folio, weight=float(part1.weight), trays=int(part1.trays), classification=part1.classification),
            PalletDetail(folio=split_folio, weight=float(part2.weight), trays=int(part2.trays), classification=part2.classification),
        ]
        apply_pallet_totals(rec, pallets=rec.pallets + 1)
        logger.info("Reception %s pallet %s split into %s", reception_id, folio, split_folio)
        return LedgerResult()

    return _edit_reception(conn, ctx, reception_id, edit)


def mark_pallets_consumed(
    receptions: list[Reception],
    reception_ids: Iterable[str],
    used_folios: Iterable[str],
) -> list[str]:
    """
    Flags consumed pallets in place. A reception whose pallets are all used
    becomes PROCESSED; one without per-pallet detail becomes PROCESSED at once.
    Returns the ids of receptions that changed status.
    """
    ids = set(reception_ids)
    used = set(used_folios)
    processed: list[str] = []

    for rec in receptions:
        if rec.id not in ids:
            continue
        before = rec.status
        if rec.pallet_details:
            for p in rec.pallet_details:
                if p.folio in used:
                    p.is_used = True
            if all(p.is_used for p in rec.pallet_details):
                rec.status = PROCESSED
        else:
            rec.status = PROCESSED
        if rec.status != before:
            processed.append(rec.id)
    return processed
