from __future__ import annotations

import secrets
import time
from datetime import date


def iso_today() -> str:
    return date.today().isoformat()


def safe_div(n: float, d: float) -> float:
    return float(n) / float(d) if d else 0.0


def new_id(prefix: str) -> str:
    # "s1718000000000a3f9c2..." -> prefix + epoch millis + random hex
    return f"{prefix}{int(time.time() * 1000)}{secrets.token_hex(6)}"
