from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from core import store
from core.models import MOVEMENT_IN, MOVEMENT_OUT, Material, MaterialMovement
from core.results import LedgerResult, WithdrawalResult, not_found, violation
from core.services.workcenter import WorkCenterContext
from core.utils import iso_now, iso_today, new_id

logger = logging.getLogger(__name__)


@dataclass
class MaterialStock:
    name: str
    quantity: float
    batches: int
    oldest_entry: str


def list_materials(conn, ctx: WorkCenterContext) -> list[Material]:
    return ctx.visible(store.load(conn, store.MATERIALS))


def list_movements(conn, ctx: WorkCenterContext) -> list[MaterialMovement]:
    return ctx.visible(store.load(conn, store.MOVEMENTS))


def fifo_batches(materials: list[Material], name: str) -> list[Material]:
    """Batches of one material, oldest entry first (stable on equal dates)."""
    return sorted((m for m in materials if m.name == name), key=lambda m: str(m.entry_date))


def on_hand(conn, ctx: WorkCenterContext, name: str) -> float:
    return sum(float(m.quantity) for m in list_materials(conn, ctx) if m.name == name)


def material_stock(conn, ctx: WorkCenterContext) -> list[MaterialStock]:
    """
    Aggregate on-hand per material name. Zero-quantity batches still count as
    batches; they are kept for their entry history.
    """
    by_name: dict[str, MaterialStock] = {}
    for m in list_materials(conn, ctx):
        row = by_name.get(m.name)
        if row is None:
            by_name[m.name] = MaterialStock(name=m.name, quantity=float(m.quantity), batches=1, oldest_entry=str(m.entry_date))
            continue
        row.quantity += float(m.quantity)
        row.batches += 1
        row.oldest_entry = min(row.oldest_entry, str(m.entry_date))
    return sorted(by_name.values(), key=lambda r: r.name)


def _movement(ctx: WorkCenterContext, kind: str, name: str, quantity: float, reason: str) -> MaterialMovement:
    return MaterialMovement(
        id=new_id("MOV"),
        work_center=ctx.active,
        date=iso_now(),
        type=kind,
        material_name=name,
        quantity=float(quantity),
        reason=reason,
    )


def _append_movement(conn, movement: MaterialMovement) -> None:
    movements = store.load(conn, store.MOVEMENTS)
    movements.append(movement)
    store.save(conn, store.MOVEMENTS, movements)


def add_material(conn, ctx: WorkCenterContext, material: Material, *, reason: str = "Initial entry") -> LedgerResult:
    if not str(material.name).strip():
        raise ValueError("Material name is required.")
    if float(material.quantity) < 0:
        raise ValueError("Material quantity cannot be negative.")

    materials = store.load(conn, store.MATERIALS)
    mat = ctx.stamp(material)
    if not mat.id:
        mat = replace(mat, id=new_id("MAT"))
    if not mat.entry_date:
        mat.entry_date = iso_today()
    if any(m.id == mat.id for m in materials):
        return violation(f"Material batch {mat.id} already exists.")

    materials.append(mat)
    store.save(conn, store.MATERIALS, materials)

    movement = _movement(ctx, MOVEMENT_IN, mat.name, mat.quantity, reason)
    _append_movement(conn, movement)
    logger.info("Material batch %s (%s x %s) added in %s", mat.id, mat.name, mat.quantity, mat.work_center)
    return LedgerResult(entity=mat)


def update_material(conn, ctx: WorkCenterContext, material: Material) -> LedgerResult:
    """Corrects batch metadata; quantity corrections leave no movement behind."""
    materials = store.load(conn, store.MATERIALS)
    idx = next((i for i, m in enumerate(materials) if m.id == material.id and ctx.includes(m.work_center)), None)
    if idx is None:
        logger.warning("Material batch %s not found for update in %s", material.id, ctx.active)
        return not_found(f"Material batch {material.id} not found.")

    mat = replace(material, work_center=materials[idx].work_center)
    materials[idx] = mat
    store.save(conn, store.MATERIALS, materials)
    logger.info("Material batch %s updated", mat.id)
    return LedgerResult(entity=mat)


def remove_material(conn, ctx: WorkCenterContext, name: str, qty: float, reason: str) -> WithdrawalResult:
    """
    FIFO depletion: consumes the oldest batches of `name` first.

    Stock is never driven below zero. If less than `qty` is on hand, everything
    available is deducted and the result reports INSUFFICIENT_STOCK; the OUT
    movement records the amount actually deducted. Emptied batches are kept.
    """
    if float(qty) <= 0:
        raise ValueError("Quantity to withdraw must be > 0.")

    materials = store.load(conn, store.MATERIALS)
    matching = fifo_batches(ctx.visible(materials), name)

    remaining = float(qty)
    for batch in matching:
        if remaining <= 0:
            break
        if float(batch.quantity) > remaining:
            batch.quantity = float(batch.quantity) - remaining
            remaining = 0.0
        else:
            remaining -= float(batch.quantity)
            batch.quantity = 0.0

    deducted = float(qty) - remaining
    result = WithdrawalResult(material_name=name, requested=float(qty), deducted=deducted)
    if deducted <= 0:
        logger.warning("No stock of %s in %s; nothing withdrawn (%s)", name, ctx.active, reason)
        return result

    store.save(conn, store.MATERIALS, materials)
    result.movement = _movement(ctx, MOVEMENT_OUT, name, deducted, reason)
    _append_movement(conn, result.movement)

    if result.shortfall > 0:
        logger.warning(
            "Withdrawal of %s short by %s in %s (requested %s, deducted %s)",
            name,
            result.shortfall,
            ctx.active,
            qty,
            deducted,
        )
    else:
        logger.info("Withdrew %s x %s in %s (%s)", deducted, name, ctx.active, reason)
    return result
