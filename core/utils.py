from __future__ import annotations

import uuid
from datetime import datetime, date, timezone

# Tolerance for kilo comparisons (units x kg-per-box products).
KILO_EPSILON = 1e-6


def iso_today() -> str:
    return date.today().isoformat()


def iso_now() -> str:
    # Use UTC ISO timestamps for consistency.
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def safe_div(n: float, d: float) -> float:
    return float(n) / float(d) if d else 0.0


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:10].upper()}"


def new_line_id() -> str:
    return uuid.uuid4().hex[:12]
