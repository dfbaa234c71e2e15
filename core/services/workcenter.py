from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Iterable, Optional, TypeVar

from core import store
from core.catalog import ALL_WORK_CENTERS, DEFAULT_WORK_CENTER
from core.db import read_json, write_json

logger = logging.getLogger(__name__)

T = TypeVar("T")

MODULE_KEYS = {
    "receptions": [store.RECEPTIONS],
    "lots": [store.LOTS],
    "inventory": [store.MATERIALS, store.MOVEMENTS],
    "dispatches": [store.DISPATCHES],
    "rrhh": list(store.RRHH_COLLECTIONS),
}


@dataclass(frozen=True)
class WorkCenterContext:
    """
    Request-scoped tenant context threaded through every ledger call.

    `active` is stamped on every record a call creates and filters every list a
    call reads. The ALL sentinel disables filtering.
    """

    active: str = DEFAULT_WORK_CENTER
    user: Optional[str] = None

    @property
    def is_global(self) -> bool:
        return self.active == ALL_WORK_CENTERS

    def includes(self, work_center: Optional[str]) -> bool:
        return self.is_global or work_center == self.active

    def visible(self, items: Iterable[T]) -> list[T]:
        return [i for i in items if self.includes(getattr(i, "work_center", None))]

    def stamp(self, item: T) -> T:
        return replace(item, work_center=self.active)


def get_active_work_center(conn) -> str:
    value = read_json(conn, store.SELECTED_WORK_CENTER, default=None)
    return str(value) if value else DEFAULT_WORK_CENTER


def current_context(conn, user: Optional[str] = None) -> WorkCenterContext:
    return WorkCenterContext(active=get_active_work_center(conn), user=user)


def switch_work_center(conn, center: str, user: Optional[str] = None) -> WorkCenterContext:
    center = str(center).strip()
    if not center:
        raise ValueError("Work center is required.")
    write_json(conn, store.SELECTED_WORK_CENTER, center)
    logger.info("Active work center switched to %s", center)
    return WorkCenterContext(active=center, user=user)


def context_for_user(conn, user: Optional[str], user_work_center: Optional[str]) -> WorkCenterContext:
    """Users assigned to a single center land on it; global users keep the persisted choice."""
    if user_work_center and user_work_center != ALL_WORK_CENTERS:
        return switch_work_center(conn, user_work_center, user=user)
    return current_context(conn, user=user)


def reset_module_data(conn, ctx: WorkCenterContext, module_key: str) -> dict[str, int]:
    """
    Drops the active center's records from a module's collections (every center's
    when the context is global). Returns removed counts per collection key.
    """
    if module_key == "all":
        keys = [k for group in MODULE_KEYS.values() for k in group] + [store.IQF_PALLETS]
    elif module_key in MODULE_KEYS:
        keys = MODULE_KEYS[module_key]
    else:
        raise ValueError(f"Unknown module: {module_key}")

    removed: dict[str, int] = {}
    for key in keys:
        items = store.load_raw(conn, key)
        if ctx.is_global:
            kept = []
        else:
            kept = [i for i in items if i.get("work_center") != ctx.active]
        store.save_raw(conn, key, kept)
        removed[key] = len(items) - len(kept)

    logger.warning(
        "Reset module %s for %s: %s",
        module_key,
        ctx.active,
        ", ".join(f"{k}={n}" for k, n in removed.items()),
    )
    return removed
