from __future__ import annotations

import pytest

from core.models import MOVEMENT_IN, MOVEMENT_OUT, Material
from core.results import INSUFFICIENT_STOCK, OK
from core.services.materials import (
    add_material,
    list_materials,
    list_movements,
    material_stock,
    on_hand,
    remove_material,
    update_material,
)

BOX = "Caja 18oz Genérica"


def _seed(conn, ctx, *batches):
    for i, (qty, entry) in enumerate(batches):
        add_material(conn, ctx, Material(id=f"MAT-{i}", name=BOX, quantity=qty, entry_date=entry))


def _quantities(conn, ctx):
    return {m.id: m.quantity for m in list_materials(conn, ctx)}


def test_fifo_withdrawal_scenario(conn, ctx):
    _seed(conn, ctx, (50, "2024-01-10"), (100, "2024-01-01"))

    result = remove_material(conn, ctx, BOX, 120, "test")

    assert result.status == OK
    assert _quantities(conn, ctx) == {"MAT-0": 30, "MAT-1": 0}
    outs = [m for m in list_movements(conn, ctx) if m.type == MOVEMENT_OUT]
    assert len(outs) == 1
    assert outs[0].quantity == 120
    assert outs[0].reason == "test"


def test_add_material_records_in_movement(conn, ctx):
    _seed(conn, ctx, (100, "2024-01-01"))
    (mov,) = list_movements(conn, ctx)
    assert mov.type == MOVEMENT_IN
    assert mov.quantity == 100
    assert mov.work_center == ctx.active


def test_withdrawal_is_additive(conn, ctx):
    _seed(conn, ctx, (100, "2024-01-01"), (50, "2024-01-10"))
    remove_material(conn, ctx, BOX, 70, "a")
    remove_material(conn, ctx, BOX, 50, "b")
    assert on_hand(conn, ctx, BOX) == pytest.approx(30)
    assert _quantities(conn, ctx) == {"MAT-0": 0, "MAT-1": 30}


def test_insufficient_stock_deducts_what_is_there(conn, ctx):
    _seed(conn, ctx, (40, "2024-01-01"))

    result = remove_material(conn, ctx, BOX, 100, "short")

    assert result.status == INSUFFICIENT_STOCK
    assert result.deducted == 40
    assert result.shortfall == 60
    assert on_hand(conn, ctx, BOX) == 0
    assert result.movement.quantity == 40


def test_no_stock_writes_nothing(conn, ctx):
    result = remove_material(conn, ctx, "Film Paletizador", 5, "none")
    assert result.status == INSUFFICIENT_STOCK
    assert list_movements(conn, ctx) == []


def test_emptied_batches_are_kept(conn, ctx):
    _seed(conn, ctx, (10, "2024-01-01"))
    remove_material(conn, ctx, BOX, 10, "all")
    (row,) = material_stock(conn, ctx)
    assert row.quantity == 0
    assert row.batches == 1


def test_withdrawal_only_touches_active_center(conn, ctx, other_ctx):
    _seed(conn, ctx, (10, "2024-01-01"))
    add_material(conn, other_ctx, Material(id="MAT-X", name=BOX, quantity=500, entry_date="2023-01-01"))

    remove_material(conn, ctx, BOX, 5, "local")

    assert on_hand(conn, ctx, BOX) == 5
    assert on_hand(conn, other_ctx, BOX) == 500


@pytest.mark.parametrize("qty", [0, -3])
def test_withdrawal_requires_positive_quantity(conn, ctx, qty):
    with pytest.raises(ValueError):
        remove_material(conn, ctx, BOX, qty, "bad")


def test_add_material_validation(conn, ctx):
    with pytest.raises(ValueError):
        add_material(conn, ctx, Material(id="", name=" ", quantity=1))
    with pytest.raises(ValueError):
        add_material(conn, ctx, Material(id="", name=BOX, quantity=-1))


def test_update_keeps_work_center(conn, ctx):
    _seed(conn, ctx, (10, "2024-01-01"))
    mat = list_materials(conn, ctx)[0]
    mat.work_center = "ELSEWHERE"
    mat.provider = "Cartones Chile"

    result = update_material(conn, ctx, mat)

    assert result.ok
    assert list_materials(conn, ctx)[0].provider == "Cartones Chile"
