from __future__ import annotations

import pytest

from core import store
from core.catalog import IQF_FOLIO_BASE
from core.models import DISPATCHED, IqfPallet, IqfSourceItem
from core.results import INSUFFICIENT_STOCK, INVARIANT_VIOLATION, NOT_FOUND
from core.services.iqf import (
    available_iqf,
    create_iqf_pallet,
    dispatch_iqf_pallets,
    join_labels,
    list_iqf_pallets,
    remaining_kilos,
    remove_iqf_pallet,
    update_iqf_pallet,
)
from core.services.production import create_lot, get_lot


def _remaining(conn, ctx, lot_id):
    rows = {a.lot_id: a.remaining for a in available_iqf(conn, ctx, include_empty=True)}
    return rows[lot_id]


@pytest.fixture
def iqf_lot(conn, ctx, make_lot):
    create_lot(conn, ctx, make_lot("LOT-A", iqf_kilos=200.0))
    return "LOT-A"


def test_consolidation_and_release(conn, ctx, iqf_lot):
    result = create_iqf_pallet(conn, ctx, [iqf_lot], trays=40)

    pallet = result.entity
    assert result.ok
    assert pallet.total_kilos == pytest.approx(200)
    assert _remaining(conn, ctx, iqf_lot) == 0

    assert remove_iqf_pallet(conn, ctx, pallet.id).ok
    assert _remaining(conn, ctx, iqf_lot) == pytest.approx(200)


def test_folios_continue_from_base(conn, ctx, make_lot):
    create_lot(conn, ctx, make_lot("LOT-A", iqf_kilos=50.0))
    create_lot(conn, ctx, make_lot("LOT-B", iqf_kilos=70.0))

    first = create_iqf_pallet(conn, ctx, ["LOT-A"]).entity
    second = create_iqf_pallet(conn, ctx, ["LOT-B"]).entity

    assert first.folio == str(IQF_FOLIO_BASE) == "500100001"
    assert second.folio == "500100002"


def test_pallet_labels_join_sources(conn, ctx, make_lot):
    create_lot(conn, ctx, make_lot("LOT-A", iqf_kilos=50.0, lot_producer="P1", lot_variety="DUKE"))
    create_lot(conn, ctx, make_lot("LOT-B", iqf_kilos=70.0, lot_producer="P2", lot_variety="DUKE"))

    pallet = create_iqf_pallet(conn, ctx, ["LOT-A", "LOT-B"]).entity

    assert pallet.formatted_producer == "P1 + P2"
    assert pallet.formatted_variety == "DUKE"
    assert [i.lot_id for i in pallet.items] == ["LOT-A", "LOT-B"]


def test_join_labels_skips_blanks_and_repeats():
    assert join_labels(["A", "", "B", "A"]) == "A + B"


def test_nothing_left_to_consolidate(conn, ctx, iqf_lot):
    create_iqf_pallet(conn, ctx, [iqf_lot])
    assert create_iqf_pallet(conn, ctx, [iqf_lot]).status == INSUFFICIENT_STOCK


def test_unknown_lot(conn, ctx):
    assert create_iqf_pallet(conn, ctx, ["LOT-Z"]).status == NOT_FOUND
    with pytest.raises(ValueError):
        create_iqf_pallet(conn, ctx, [])


def test_label_edit(conn, ctx, iqf_lot):
    pallet = create_iqf_pallet(conn, ctx, [iqf_lot]).entity
    result = update_iqf_pallet(conn, ctx, pallet.id, formatted_producer="Varios", trays=12)
    assert result.ok
    (stored,) = list_iqf_pallets(conn, ctx)
    assert (stored.formatted_producer, stored.trays) == ("Varios", 12)


def test_dispatched_pallet_is_frozen(conn, ctx, iqf_lot):
    pallet = create_iqf_pallet(conn, ctx, [iqf_lot]).entity

    result = dispatch_iqf_pallets(conn, ctx, [pallet.id], "G-77")

    assert result.ok
    (stored,) = list_iqf_pallets(conn, ctx)
    assert stored.status == DISPATCHED
    assert stored.dispatch_guide == "G-77"
    assert remove_iqf_pallet(conn, ctx, pallet.id).status == INVARIANT_VIOLATION
    assert update_iqf_pallet(conn, ctx, pallet.id, trays=1).status == INVARIANT_VIOLATION
    assert _remaining(conn, ctx, iqf_lot) == 0


def test_dispatch_requires_guide(conn, ctx, iqf_lot):
    pallet = create_iqf_pallet(conn, ctx, [iqf_lot]).entity
    with pytest.raises(ValueError):
        dispatch_iqf_pallets(conn, ctx, [pallet.id], "  ")


def test_float_residue_is_not_loose_stock(conn, ctx, make_lot):
    create_lot(conn, ctx, make_lot("LOT-A", iqf_kilos=0.1 + 0.2))
    pallet = IqfPallet(id="IQF-1", work_center=ctx.active, folio="500100001", items=[IqfSourceItem("LOT-A", 0.3)])
    store.save(conn, store.IQF_PALLETS, [pallet])

    assert remaining_kilos(get_lot(conn, ctx, "LOT-A"), [pallet]) == 0.0
    assert available_iqf(conn, ctx) == []
    assert create_iqf_pallet(conn, ctx, ["LOT-A"]).status == INSUFFICIENT_STOCK
