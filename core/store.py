"""
Typed access to the persisted collections.

Each collection is one JSON array under a stable key; loading returns model
instances for ledger collections and plain dicts for the HR/user collections,
which the ledger only ever filters or resets.
"""
from __future__ import annotations

from typing import Any

from core.db import read_json, write_json
from core.models import Dispatch, IqfPallet, Material, MaterialMovement, ProductionLot, Reception

RECEPTIONS = "db_receptions"
LOTS = "db_lots"
MATERIALS = "db_materials"
MOVEMENTS = "db_movements"
DISPATCHES = "db_dispatches"
IQF_PALLETS = "db_iqf_pallets"

EMPLOYEES = "db_employees"
ATTENDANCE = "db_attendance"
CONTRACTS = "db_contracts"
SETTLEMENTS = "db_settlements"
PAYROLLS = "db_payrolls"
USERS = "db_users"

SELECTED_WORK_CENTER = "selected_work_center"

LEDGER_MODELS = {
    RECEPTIONS: Reception,
    LOTS: ProductionLot,
    MATERIALS: Material,
    MOVEMENTS: MaterialMovement,
    DISPATCHES: Dispatch,
    IQF_PALLETS: IqfPallet,
}

RRHH_COLLECTIONS = [EMPLOYEES, ATTENDANCE, CONTRACTS, SETTLEMENTS, PAYROLLS]


def load_raw(conn, key: str) -> list[dict[str, Any]]:
    data = read_json(conn, key, default=[])
    return list(data) if isinstance(data, list) else []


def save_raw(conn, key: str, items: list[dict[str, Any]]) -> None:
    write_json(conn, key, list(items))


def load(conn, key: str) -> list:
    model = LEDGER_MODELS[key]
    return [model.from_dict(d) for d in load_raw(conn, key)]


def save(conn, key: str, items: list) -> None:
    save_raw(conn, key, [i.to_dict() for i in items])
