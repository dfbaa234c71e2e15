from __future__ import annotations

import pytest

from core.catalog import TARE_PALLET, TARE_TRAY
from core.services.tare import net_weight, pallet_net_weight


def test_tare_constants_are_pinned():
    assert TARE_TRAY == 0.32
    assert TARE_PALLET == 20.0


def test_reception_net_weight_scenario():
    # 3100 - (500 * 0.32 + 5 * 20)
    assert net_weight(3100, 500, 5) == pytest.approx(2840.0)


def test_net_weight_never_negative():
    assert net_weight(10, 100, 2) == 0.0


def test_single_pallet_net_weight_includes_one_pallet_tare():
    assert pallet_net_weight(620, 100) == pytest.approx(620 - 32 - 20)
