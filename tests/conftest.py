from __future__ import annotations

import pytest

from core.db import connect, ensure_schema
from core.models import PalletDetail, ProductionDetail, ProductionLot, Reception
from core.services.workcenter import WorkCenterContext

CENTER = "PLANTA NORTE"
OTHER_CENTER = "PLANTA SUR"

FORMAT_18OZ = "ARAND ORG 12x18oz ETIQ. HIPPIE"
KG_18OZ = 6.3648


@pytest.fixture
def conn(tmp_path):
    c = connect(tmp_path / "ledger.db")
    ensure_schema(c)
    yield c
    c.close()


@pytest.fixture
def ctx():
    return WorkCenterContext(active=CENTER, user="operador")


@pytest.fixture
def other_ctx():
    return WorkCenterContext(active=OTHER_CENTER)


@pytest.fixture
def make_reception():
    def _make(rec_id="REC-1", code="4052", pallets=3, weight=620.0, trays=100, **kw):
        details = [PalletDetail(folio=f"{i + 1:04d}-{code}", weight=weight, trays=trays) for i in range(pallets)]
        kw.setdefault("producer", "Agricola Santa Carmen S.A.")
        kw.setdefault("variety", "DUKE")
        return Reception(id=rec_id, guide_number="5042", pallet_details=details, **kw)

    return _make


@pytest.fixture
def make_detail():
    def _make(units=144, folio="F1", weight=KG_18OZ, **kw):
        kw.setdefault("format_name", FORMAT_18OZ)
        return ProductionDetail(weight_per_unit=weight, units=units, pallets=1, manual_folio=folio, **kw)

    return _make


@pytest.fixture
def make_lot(make_detail):
    def _make(lot_id="PROC-20250126-001", details=None, input_kg=1704.0, **kw):
        kw.setdefault("lot_producer", "Agricola Santa Carmen S.A.")
        kw.setdefault("lot_variety", "DUKE")
        kw.setdefault("created_at", "2025-01-26T10:00:00+00:00")
        return ProductionLot(
            id=lot_id,
            details=list(details) if details is not None else [make_detail()],
            total_input_net_weight=input_kg,
            **kw,
        )

    return _make
