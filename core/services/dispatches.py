from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable

from core import store
from core.models import Dispatch
from core.results import LedgerResult, violation
from core.services.stock import available_pallets
from core.services.workcenter import WorkCenterContext
from core.utils import iso_today, new_id

logger = logging.getLogger(__name__)


def list_dispatches(conn, ctx: WorkCenterContext) -> list[Dispatch]:
    return ctx.visible(store.load(conn, store.DISPATCHES))


def add_dispatch(conn, ctx: WorkCenterContext, dispatch: Dispatch) -> LedgerResult:
    """
    Records a shipment. Folios it names must be available right now; a
    dispatch without folios is a legacy whole-lot record and is taken as is.
    """
    if dispatch.dispatched_folios:
        available = {p.manual_folio for p in available_pallets(conn, ctx)}
        missing = sorted(set(dispatch.dispatched_folios) - available)
        if missing:
            logger.warning("Dispatch %s rejected; folios not available: %s", dispatch.guide, ", ".join(missing))
            return violation(f"Folio(s) not available: {', '.join(missing)}")

    dispatches = store.load(conn, store.DISPATCHES)
    disp = ctx.stamp(dispatch)
    if not disp.id:
        disp = replace(disp, id=new_id("DISP"))
    if any(d.id == disp.id for d in dispatches):
        return violation(f"Dispatch {disp.id} already exists.")

    dispatches.append(disp)
    store.save(conn, store.DISPATCHES, dispatches)
    logger.info(
        "Dispatch %s (guide %s) to %s in %s: %d folio(s), %.2f kg",
        disp.id,
        disp.guide,
        disp.client,
        disp.work_center,
        len(disp.dispatched_folios),
        disp.total_kilos,
    )
    return LedgerResult(entity=disp)


def dispatch_folios(
    conn,
    ctx: WorkCenterContext,
    *,
    guide: str,
    client: str,
    folios: Iterable[str],
    date: str = "",
) -> LedgerResult:
    """Builds a dispatch from the selected finished-goods folios."""
    selected = list(dict.fromkeys(str(f) for f in folios))
    if not str(guide).strip():
        raise ValueError("Dispatch guide is required.")
    if not str(client).strip():
        raise ValueError("Client is required.")
    if not selected:
        raise ValueError("Select at least one folio.")

    lines = [p for p in available_pallets(conn, ctx) if p.manual_folio in selected]
    dispatch = Dispatch(
        id="",
        guide=str(guide).strip(),
        client=str(client).strip(),
        date=date or iso_today(),
        lot_ids=list(dict.fromkeys(l.lot_id for l in lines)),
        dispatched_folios=selected,
        total_kilos=sum(l.kilos for l in lines),
        total_units=sum(l.units for l in lines),
    )
    return add_dispatch(conn, ctx, dispatch)
