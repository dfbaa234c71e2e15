"""
Ledger records as persisted in the key-value store.

Every record is loaded tolerantly: unknown keys are dropped and missing keys take
the field default, so records written before a field existed still load.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Optional

from core.utils import safe_div

PENDING = "PENDING"
PROCESSED = "PROCESSED"
DISPATCHED = "DISPATCHED"

MOVEMENT_IN = "IN"
MOVEMENT_OUT = "OUT"


def _known(cls, data: dict) -> dict:
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in dict(data or {}).items() if k in names}


class Record:
    """Mixin for dict round-tripping."""

    @classmethod
    def from_dict(cls, data: dict):
        return cls(**_known(cls, data))

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class PalletDetail(Record):
    folio: str
    weight: float = 0.0
    trays: int = 0
    classification: str = "PROCESO"
    is_used: bool = False


@dataclass
class Reception(Record):
    id: str
    work_center: str = ""
    guide_number: str = ""
    producer: str = ""
    variety: str = ""
    origin_type: str = "ORGANICO"
    reception_date: str = ""
    lot_number: str = ""
    temperature: float = 0.0
    trays: int = 0
    pallets: int = 0
    gross_weight: float = 0.0
    net_weight: float = 0.0
    status: str = PENDING
    pallet_details: list[PalletDetail] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "Reception":
        kw = _known(cls, data)
        kw["pallet_details"] = [PalletDetail.from_dict(p) for p in kw.get("pallet_details") or []]
        return cls(**kw)

    def find_pallet(self, folio: str) -> Optional[PalletDetail]:
        return next((p for p in self.pallet_details if p.folio == folio), None)


@dataclass
class ProductionDetail(Record):
    format_name: str = ""
    weight_per_unit: float = 0.0
    units: int = 0
    pallets: int = 0
    manual_folio: str = ""
    total_kilos: float = 0.0
    is_full_pallet: bool = False
    production_line: str = ""
    line_id: str = ""

    # Origin traceability, carried unchanged when the line moves between lots.
    origin_lot_id: str = ""
    origin_producer: str = ""
    origin_variety: str = ""
    origin_date: str = ""

    def recompute(self) -> None:
        self.total_kilos = float(self.units) * float(self.weight_per_unit)


@dataclass
class ProductionLot(Record):
    id: str
    work_center: str = ""
    reception_ids: list[str] = field(default_factory=list)
    used_pallet_folios: list[str] = field(default_factory=list)
    total_input_net_weight: float = 0.0
    created_at: str = ""
    lot_producer: str = ""
    lot_variety: str = ""
    details: list[ProductionDetail] = field(default_factory=list)
    produced_kilos: float = 0.0
    iqf_kilos: float = 0.0
    merma_kilos: float = 0.0
    waste_kilos: float = 0.0
    custom_discards: list[dict] = field(default_factory=list)
    yield_percentage: float = 0.0

    @classmethod
    def from_dict(cls, data: dict) -> "ProductionLot":
        kw = _known(cls, data)
        kw["details"] = [ProductionDetail.from_dict(d) for d in kw.get("details") or []]
        kw["reception_ids"] = list(kw.get("reception_ids") or [])
        kw["used_pallet_folios"] = list(kw.get("used_pallet_folios") or [])
        kw["custom_discards"] = list(kw.get("custom_discards") or [])
        lot = cls(**kw)
        # Lines stored before line ids existed keep their old "<lot>-<index>" address.
        for i, d in enumerate(lot.details):
            if not d.line_id:
                d.line_id = f"{lot.id}-{i}"
        return lot

    @property
    def custom_discard_kilos(self) -> float:
        return sum(float(d.get("kilos") or 0) for d in self.custom_discards)

    def find_detail(self, line_id: str) -> Optional[ProductionDetail]:
        return next((d for d in self.details if d.line_id == line_id), None)

    def recompute_totals(self) -> None:
        self.produced_kilos = sum(float(d.total_kilos) for d in self.details)
        self.yield_percentage = safe_div(self.produced_kilos, self.total_input_net_weight) * 100.0


@dataclass
class Material(Record):
    id: str
    work_center: str = ""
    name: str = ""
    provider: str = ""
    quantity: float = 0.0
    entry_date: str = ""
    guide_number: str = ""
    unit_cost: float = 0.0


@dataclass
class MaterialMovement(Record):
    id: str
    work_center: str = ""
    date: str = ""
    type: str = MOVEMENT_IN
    material_name: str = ""
    quantity: float = 0.0
    reason: str = ""


@dataclass
class Dispatch(Record):
    id: str
    work_center: str = ""
    guide: str = ""
    client: str = ""
    date: str = ""
    lot_ids: list[str] = field(default_factory=list)
    dispatched_folios: list[str] = field(default_factory=list)
    total_kilos: float = 0.0
    total_units: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> "Dispatch":
        kw = _known(cls, data)
        kw["lot_ids"] = list(kw.get("lot_ids") or [])
        kw["dispatched_folios"] = list(kw.get("dispatched_folios") or [])
        return cls(**kw)

    @property
    def is_legacy(self) -> bool:
        # Old dispatches recorded whole lots instead of folios.
        return not self.dispatched_folios


@dataclass
class IqfSourceItem(Record):
    lot_id: str
    kilos: float = 0.0
    producer: str = ""
    variety: str = ""
    guide: str = ""


@dataclass
class IqfPallet(Record):
    id: str
    work_center: str = ""
    folio: str = ""
    creation_date: str = ""
    items: list[IqfSourceItem] = field(default_factory=list)
    total_kilos: float = 0.0
    trays: int = 0
    status: str = PENDING
    formatted_producer: str = ""
    formatted_variety: str = ""
    dispatch_guide: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "IqfPallet":
        kw = _known(cls, data)
        kw["items"] = [IqfSourceItem.from_dict(i) for i in kw.get("items") or []]
        return cls(**kw)
