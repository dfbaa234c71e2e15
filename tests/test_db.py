from __future__ import annotations

import pytest

from core import store
from core.db import ensure_schema, read_json, transaction, write_json
from core.models import ProductionLot, Reception
from core.services.stock import finished_goods_stock


def test_json_roundtrip_and_full_rewrite(conn):
    write_json(conn, "db_things", [{"a": 1}])
    write_json(conn, "db_things", [{"a": 2}, {"a": 3}])
    assert read_json(conn, "db_things") == [{"a": 2}, {"a": 3}]
    assert read_json(conn, "missing", default=[]) == []


def test_ensure_schema_is_idempotent(conn):
    ensure_schema(conn)
    ensure_schema(conn)
    write_json(conn, "k", "v")
    assert read_json(conn, "k") == "v"


def test_records_tolerate_missing_and_unknown_fields(conn):
    store.save_raw(conn, store.RECEPTIONS, [{"id": "REC-OLD", "producer": "X", "legacy_flag": True}])
    (rec,) = store.load(conn, store.RECEPTIONS)
    assert isinstance(rec, Reception)
    assert rec.pallet_details == []
    assert rec.status == "PENDING"
    assert rec.work_center == ""


def test_lines_without_ids_get_their_legacy_address():
    lot = ProductionLot.from_dict(
        {"id": "PROC-1", "details": [{"units": 1, "weight_per_unit": 2.0}, {"units": 2, "weight_per_unit": 2.0}]}
    )
    assert [d.line_id for d in lot.details] == ["PROC-1-0", "PROC-1-1"]


def test_saved_lines_keep_their_ids(conn):
    store.save_raw(conn, store.LOTS, [{"id": "PROC-1", "details": [{"units": 1}]}])
    lots = store.load(conn, store.LOTS)
    store.save(conn, store.LOTS, lots)
    assert store.load_raw(conn, store.LOTS)[0]["details"][0]["line_id"] == "PROC-1-0"


def test_null_lists_load_as_empty(conn, ctx, make_lot):
    store.save(conn, store.LOTS, [ctx.stamp(make_lot("LOT-A"))])
    store.save_raw(
        conn,
        store.DISPATCHES,
        [{"id": "D1", "work_center": ctx.active, "lot_ids": None, "dispatched_folios": None}],
    )
    raw_lot = store.load_raw(conn, store.LOTS)[0]
    raw_lot.update(reception_ids=None, used_pallet_folios=None, custom_discards=None)
    store.save_raw(conn, store.LOTS, [raw_lot])

    (disp,) = store.load(conn, store.DISPATCHES)
    (lot,) = store.load(conn, store.LOTS)

    assert (disp.lot_ids, disp.dispatched_folios) == ([], [])
    assert (lot.reception_ids, lot.used_pallet_folios, lot.custom_discards) == ([], [], [])
    assert [g.display_folio for g in finished_goods_stock(conn, ctx)] == ["F1"]


def test_transaction_commits_once_or_rolls_back(conn):
    with transaction(conn):
        write_json(conn, "a", 1)
        write_json(conn, "b", 2)
    assert (read_json(conn, "a"), read_json(conn, "b")) == (1, 2)

    with pytest.raises(RuntimeError):
        with transaction(conn):
            write_json(conn, "a", 10)
            raise RuntimeError("boom")
    assert read_json(conn, "a") == 1
