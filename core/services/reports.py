"""
Tabular views for the print/export layer. Read-only; every frame is rebuilt
from the derived views on each call.
"""
from __future__ import annotations

from typing import Iterable

import pandas as pd

from core.models import DISPATCHED, IqfPallet, ProductionLot
from core.services.stock import StockGroup
from core.services.materials import MaterialStock

STOCK_COLUMNS = ["folio", "format", "units", "pallets", "kilos", "full_pallet", "mixed", "origins"]


def stock_frame(groups: Iterable[StockGroup]) -> pd.DataFrame:
    rows = [
        {
            "folio": g.display_folio,
            "format": g.format_name,
            "units": int(g.total_units),
            "pallets": int(g.total_pallets),
            "kilos": round(float(g.total_kilos), 2),
            "full_pallet": bool(g.is_full_pallet),
            "mixed": g.is_mixed,
            "origins": "; ".join(f"{l.producer} / {l.variety} ({l.units})" for l in g.lines),
        }
        for g in groups
    ]
    return pd.DataFrame(rows, columns=STOCK_COLUMNS)


def material_stock_frame(stock: Iterable[MaterialStock]) -> pd.DataFrame:
    df = pd.DataFrame(
        [{"material": s.name, "quantity": s.quantity, "batches": s.batches, "oldest_entry": s.oldest_entry} for s in stock],
        columns=["material", "quantity", "batches", "oldest_entry"],
    )
    df["quantity"] = pd.to_numeric(df["quantity"], errors="coerce").fillna(0.0)
    return df


def iqf_pallets_frame(pallets: Iterable[IqfPallet]) -> pd.DataFrame:
    rows = [
        {
            "folio": p.folio,
            "date": str(p.creation_date)[:10],
            "producers": p.formatted_producer,
            "varieties": p.formatted_variety,
            "kilos": round(float(p.total_kilos), 2),
            "trays": int(p.trays),
            "status": "DISPATCHED" if p.status == DISPATCHED else "IN STOCK",
            "dispatch_guide": p.dispatch_guide or "-",
        }
        for p in pallets
    ]
    return pd.DataFrame(
        rows,
        columns=["folio", "date", "producers", "varieties", "kilos", "trays", "status", "dispatch_guide"],
    )


def lot_yield_frame(lots: Iterable[ProductionLot]) -> pd.DataFrame:
    df = pd.DataFrame(
        [
            {
                "lot_id": lot.id,
                "created_at": lot.created_at,
                "producer": lot.lot_producer,
                "variety": lot.lot_variety,
                "input_kg": float(lot.total_input_net_weight),
                "produced_kg": float(lot.produced_kilos),
                "iqf_kg": float(lot.iqf_kilos),
                "merma_kg": float(lot.merma_kilos),
                "waste_kg": float(lot.waste_kilos),
                "discards_kg": lot.custom_discard_kilos,
                "yield_pct": float(lot.yield_percentage),
            }
            for lot in lots
        ],
        columns=[
            "lot_id", "created_at", "producer", "variety", "input_kg",
            "produced_kg", "iqf_kg", "merma_kg", "waste_kg", "discards_kg", "yield_pct",
        ],
    )
    if not df.empty:
        df = df.sort_values("created_at").reset_index(drop=True)
        df["yield_pct"] = df["yield_pct"].round(2)
    return df
