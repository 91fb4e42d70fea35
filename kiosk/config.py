from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

import streamlit as st

from kiosk.models import PricingRules

CONFIG_FILE_NAME = "settings.json"
ENV_DATA_DIR = "KIOSK_LEDGER_DATA_DIR"
SESSION_DATA_DIR = "kiosk_ledger_data_dir"


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    db_path: Path
    currency: str = "AED"
    environment: str = "development"
    log_level: str = "INFO"
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    rules: PricingRules = field(default_factory=PricingRules)

    @property
    def hosted_store_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


def _default_data_dir() -> Path:
    return Path.home() / ".kiosk_ledger"


def _load_persisted_settings(data_dir: Path) -> dict:
    cfg = data_dir / CONFIG_FILE_NAME
    if cfg.exists():
        try:
            return json.loads(cfg.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return {}
    return {}


def persist_data_dir(data_dir_str: str) -> None:
    data_dir = Path(data_dir_str).expanduser().resolve()
    data_dir.mkdir(parents=True, exist_ok=True)

    cfg = data_dir / CONFIG_FILE_NAME
    payload = {"data_dir": str(data_dir)}
    cfg.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    # Also remember it in the default folder so the next start picks it up
    default_dir = _default_data_dir()
    default_dir.mkdir(parents=True, exist_ok=True)
    (default_dir / CONFIG_FILE_NAME).write_text(json.dumps(payload, indent=2), encoding="utf-8")

    # Update session for immediate effect
    st.session_state[SESSION_DATA_DIR] = str(data_dir)


def _float_env(environ: Mapping[str, str], key: str, default: float) -> float:
    raw = environ.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{key} must be a number, got {raw!r}.")


def build_rules(environ: Mapping[str, str]) -> PricingRules:
    base = PricingRules()
    return PricingRules(
        pos_fixed_charge=_float_env(environ, "KIOSK_POS_FIXED_CHARGE", base.pos_fixed_charge),
        pos_fee_rate=_float_env(environ, "KIOSK_POS_FEE_RATE", base.pos_fee_rate),
        specialty_deduction_per_unit=_float_env(
            environ, "KIOSK_SPECIALTY_DEDUCTION", base.specialty_deduction_per_unit
        ),
    )


def build_settings(environ: Mapping[str, str], session_data_dir: Optional[str] = None) -> Settings:
    # Priority order for the data directory:
    # 1) Session state (set via Data Management page)
    # 2) Environment variable
    # 3) Persisted settings in default folder
    # 4) Default folder
    if session_data_dir:
        data_dir = Path(session_data_dir).expanduser().resolve()
    elif environ.get(ENV_DATA_DIR):
        data_dir = Path(environ[ENV_DATA_DIR]).expanduser().resolve()
    else:
        default_dir = _default_data_dir()
        persisted = _load_persisted_settings(default_dir)
        data_dir = Path(persisted.get("data_dir", default_dir)).expanduser().resolve()

    data_dir.mkdir(parents=True, exist_ok=True)
    return Settings(
        data_dir=data_dir,
        db_path=data_dir / "app.db",
        currency=environ.get("KIOSK_CURRENCY", "AED"),
        environment=environ.get("KIOSK_ENV", "development"),
        log_level=environ.get("KIOSK_LOG_LEVEL", "INFO").upper(),
        supabase_url=environ.get("SUPABASE_URL") or None,
        supabase_key=environ.get("SUPABASE_ANON_KEY") or None,
        rules=build_rules(environ),
    )


@st.cache_resource
def _cached_settings(session_data_dir: Optional[str]) -> Settings:
    return build_settings(os.environ, session_data_dir)


def get_settings() -> Settings:
    return _cached_settings(st.session_state.get(SESSION_DATA_DIR))
