from __future__ import annotations

from core.catalog import TARE_PALLET, TARE_TRAY


def net_weight(gross: float, trays: int, pallets: int) -> float:
    tare = float(trays) * TARE_TRAY + float(pallets) * TARE_PALLET
    return max(0.0, float(gross) - tare)


def pallet_net_weight(weight: float, trays: int) -> float:
    """Net kilos of a single pallet (printed on its tag)."""
    return net_weight(weight, trays, 1)
