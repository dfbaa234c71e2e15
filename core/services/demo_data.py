from __future__ import annotations

from datetime import date, timedelta

from core import store
from core.catalog import PACKING_FORMATS
from core.db import delete_key, list_keys
from core.models import Dispatch, Material, PalletDetail, ProductionDetail, ProductionLot, Reception
from core.services.dispatches import add_dispatch
from core.services.materials import add_material
from core.services.production import create_lot
from core.services.receptions import add_reception
from core.services.workcenter import WorkCenterContext

DEMO_RECEPTIONS = [
    # (id, guide, producer, code, variety, origin, pallets, kg per pallet, trays per pallet, days ago)
    ("REC-001", "5042", "Agricola Santa Carmen S.A.", "4052", "DUKE", "ORGANICO", 5, 620.0, 100, 2),
    ("REC-002", "9981", "Agrícola Malihuito SpA.", "4050", "LEGACY", "CONVENCIONAL", 3, 650.0, 106, 1),
    ("REC-003", "1025", "Sociedad Agrícola y Comercial Arantruf Ltda.", "4057", "BRIGITTA", "ORGANICO", 4, 625.0, 100, 0),
]

DEMO_MATERIALS = [
    ("MAT-001", "Caja 18oz Genérica", "Cartones Chile", 4800, 450, "2024-01-10"),
    ("MAT-002", "Film Paletizador", "Insumos del Sur", 195, 3500, "2024-01-12"),
    ("MAT-003", "Esquinero Cartón", "Cartones Chile", 950, 150, "2024-01-15"),
    ("MAT-004", "Bandeja Cosechera Negra", "Plásticos Agri", 2500, 2000, "2024-01-01"),
]


def wipe_all(conn) -> None:
    # Keep schema, delete data (the active work center survives).
    for key in list_keys(conn):
        if key != store.SELECTED_WORK_CENTER:
            delete_key(conn, key)


def load_demo_data(conn, ctx: WorkCenterContext) -> None:
    today = date.today()

    for rec_id, guide, producer, code, variety, origin, n, kg, trays, days in DEMO_RECEPTIONS:
        add_reception(
            conn,
            ctx,
            Reception(
                id=rec_id,
                guide_number=guide,
                producer=producer,
                variety=variety,
                origin_type=origin,
                reception_date=(today - timedelta(days=days)).isoformat(),
                lot_number=f"L-{guide}",
                pallet_details=[
                    PalletDetail(folio=f"{i + 1:04d}-{code}", weight=kg, trays=trays) for i in range(n)
                ],
            ),
        )

    for mat_id, name, provider, qty, cost, entry in DEMO_MATERIALS:
        add_material(
            conn,
            ctx,
            Material(id=mat_id, name=name, provider=provider, quantity=qty, unit_cost=cost, entry_date=entry),
        )

    (fmt_18oz, kg_18oz), _, _, (fmt_6oz, kg_6oz) = PACKING_FORMATS
    lot_day = today - timedelta(days=1)
    lot = ProductionLot(
        id=f"PROC-{lot_day.strftime('%Y%m%d')}-001",
        reception_ids=["REC-001"],
        used_pallet_folios=["0001-4052", "0002-4052", "0003-4052"],
        total_input_net_weight=1704.0,
        created_at=lot_day.isoformat(),
        lot_producer="Agricola Santa Carmen S.A.",
        lot_variety="DUKE",
        details=[
            ProductionDetail(
                format_name=fmt_18oz, weight_per_unit=kg_18oz, units=144, pallets=1,
                manual_folio="1001000001", production_line="LINEA 1", is_full_pallet=True,
            ),
            ProductionDetail(
                format_name=fmt_6oz, weight_per_unit=kg_6oz, units=200, pallets=1,
                manual_folio="1001000002", production_line="LINEA 1",
            ),
        ],
        iqf_kilos=200.0,
        merma_kilos=100.0,
        waste_kilos=63.15,
        custom_discards=[{"label": "Hoja y palo", "kilos": 12.5}],
    )
    create_lot(conn, ctx, lot, material_name="Caja 18oz Genérica", boxes_used=144)

    add_dispatch(
        conn,
        ctx,
        Dispatch(
            id="DISP-001",
            guide="5501",
            client="HORTIFRUT",
            date=today.isoformat(),
            lot_ids=[lot.id],
            dispatched_folios=["1001000001"],
            total_kilos=144 * kg_18oz,
            total_units=144,
        ),
    )
