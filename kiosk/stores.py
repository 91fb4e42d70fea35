"""
Persistence adapters.

Two interchangeable backends share one small capability interface: a hosted
Supabase (PostgREST) project and a local SQLite file. `open_store` picks one at
startup; nothing above this module knows which is active. Failures come back as
None / False and are logged here, never raised.
"""

from __future__ import annotations

import json
import sqlite3
from dataclasses import asdict, fields
from typing import Any, Optional, Protocol

import httpx

from kiosk.db import connect, ensure_schema, q, table_columns, x
from kiosk.logging import get_logger
from kiosk.models import (
    SOURCE_MANUAL,
    AppState,
    FixedCost,
    Ingredient,
    IngredientBatch,
    PosFeeSettings,
    PricingRules,
    Product,
    Sale,
    StrawberryBatch,
    WasteEntry,
)
from kiosk.schema import TABLE_ORDER_BY

logger = get_logger(__name__)

RECORD_TYPES: dict[str, type] = {
    "products": Product,
    "sales": Sale,
    "fixed_costs": FixedCost,
    "ingredients": Ingredient,
    "ingredient_batches": IngredientBatch,
    "strawberry_batches": StrawberryBatch,
    "waste_entries": WasteEntry,
}

KIND_BY_TYPE = {v: k for k, v in RECORD_TYPES.items()}

SETTING_POS_FEE_PERCENT = "pos_fee_percent"
SETTING_POS_FEE_MANUAL = "pos_fee_manual"
SETTING_USE_MANUAL_POS_FEE = "use_manual_pos_fee"
SETTING_MANUAL_INVENTORY = "manual_inventory_adjustments"

_BOOL_FIELDS = {"use_manual_cost"}
_INT_FIELDS = {"qty"}


class RecordStore(Protocol):
    name: str

    def get_all(self, kind: str) -> Optional[list[dict]]: ...

    def upsert(self, kind: str, record: dict) -> bool: ...

    def delete_by_id(self, kind: str, record_id: str) -> bool: ...

    def add_setting_value(self, key: str, value: Any) -> bool: ...

    def get_setting_values(self) -> Optional[dict[str, str]]: ...


# -------------------------
# Record <-> dataclass
# -------------------------

def to_record(obj: Any) -> dict:
    rec = asdict(obj)
    if isinstance(obj, StrawberryBatch):
        # Derived values are written for display parity; they are never read back.
        rec["bulk_weight_kg"] = obj.bulk_weight_kg
        rec["cost_per_gram"] = obj.cost_per_gram
        rec["cost_per_piece"] = obj.cost_per_piece
    return rec


def from_record(kind: str, row: dict) -> Any:
    cls = RECORD_TYPES[kind]
    data: dict[str, Any] = {}
    for f in fields(cls):
        if f.name not in row:
            continue
        v = row[f.name]
        if f.name in _BOOL_FIELDS:
            v = bool(v)
        elif f.name in _INT_FIELDS and v is not None:
            v = int(v)
        data[f.name] = v

    if cls is Sale:
        data["source"] = data.get("source") or SOURCE_MANUAL
        data["transaction_id"] = data.get("transaction_id") or None
    if cls is StrawberryBatch and "bulk_weight_g" not in data and row.get("bulk_weight_kg") is not None:
        data["bulk_weight_g"] = float(row["bulk_weight_kg"]) * 1000.0
    if cls is WasteEntry:
        data["reason"] = data.get("reason") or ""
    return cls(**data)


def _setting_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


# -------------------------
# Local SQLite store
# -------------------------

class SqliteStore:
    name = "local"

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        ensure_schema(conn)
        self._columns = {kind: set(table_columns(conn, kind)) for kind in RECORD_TYPES}

    @classmethod
    def open(cls, db_path) -> "SqliteStore":
        return cls(connect(db_path))

    def get_all(self, kind: str) -> Optional[list[dict]]:
        try:
            rows = q(self.conn, f"SELECT * FROM {kind} ORDER BY {TABLE_ORDER_BY[kind]}")
        except sqlite3.Error as e:
            logger.error("store_read_failed", store=self.name, kind=kind, error=str(e))
            return None
        return [dict(r) for r in rows]

    def upsert(self, kind: str, record: dict) -> bool:
        cols = [c for c in record if c in self._columns[kind]]
        placeholders = ", ".join("?" for _ in cols)
        updates = ", ".join(f"{c}=excluded.{c}" for c in cols if c != "id")
        sql = (
            f"INSERT INTO {kind} ({', '.join(cols)}) VALUES ({placeholders}) "
            f"ON CONFLICT(id) DO UPDATE SET {updates}"
        )
        try:
            x(self.conn, sql, [record[c] for c in cols])
        except sqlite3.Error as e:
            logger.error("store_write_failed", store=self.name, kind=kind, id=record.get("id"), error=str(e))
            return False
        return True

    def delete_by_id(self, kind: str, record_id: str) -> bool:
        try:
            x(self.conn, f"DELETE FROM {kind} WHERE id=?", (record_id,))
        except sqlite3.Error as e:
            logger.error("store_delete_failed", store=self.name, kind=kind, id=record_id, error=str(e))
            return False
        return True

    def add_setting_value(self, key: str, value: Any) -> bool:
        try:
            x(
                self.conn,
                "INSERT INTO settings (key, value) VALUES (?, ?) ON CONFLICT(key) DO UPDATE SET value=excluded.value",
                (key, _setting_text(value)),
            )
        except sqlite3.Error as e:
            logger.error("store_setting_failed", store=self.name, key=key, error=str(e))
            return False
        return True

    def get_setting_values(self) -> Optional[dict[str, str]]:
        try:
            rows = q(self.conn, "SELECT key, value FROM settings")
        except sqlite3.Error as e:
            logger.error("store_read_failed", store=self.name, kind="settings", error=str(e))
            return None
        return {str(r["key"]): str(r["value"]) for r in rows}


# -------------------------
# Hosted Supabase store
# -------------------------

# Hosted tables keep the column names of the existing Supabase project.
HOSTED_COLUMN_ALIASES: dict[str, dict[str, str]] = {
    "products": {
        "manual_cost_per_unit": "manual_cost_per_cup",
        "strawberries_per_unit": "strawberries_per_cup",
        "chocolate_g_per_unit": "chocolate_per_cup",
        "kunafa_g_per_unit": "kunafa_per_cup",
        "cups_per_unit": "cups_per_cup",
        "sticks_per_unit": "sticks_per_cup",
    },
    "strawberry_batches": {
        "avg_weight_per_piece": "avg_weight_per_strawberry",
        "cost_per_piece": "cost_per_strawberry",
    },
}

# Generated columns on the hosted side: readable, never written.
HOSTED_COMPUTED_COLUMNS: dict[str, set[str]] = {
    "strawberry_batches": {"cost_per_gram", "cost_per_piece"},
}

HOSTED_ORDER = {
    "sales": "date.asc",
    "ingredient_batches": "date.asc",
    "strawberry_batches": "date.asc",
    "waste_entries": "date.asc",
}


class SupabaseStore:
    name = "hosted"

    def __init__(self, url: str, key: str, *, timeout: float = 10.0, transport: Optional[httpx.BaseTransport] = None):
        self.client = httpx.Client(
            base_url=url.rstrip("/") + "/rest/v1",
            headers={
                "apikey": key,
                "Authorization": f"Bearer {key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self.client.close()

    def _to_hosted(self, kind: str, record: dict) -> dict:
        aliases = HOSTED_COLUMN_ALIASES.get(kind, {})
        computed = HOSTED_COMPUTED_COLUMNS.get(kind, set())
        return {aliases.get(k, k): v for k, v in record.items() if k not in computed}

    def _from_hosted(self, kind: str, row: dict) -> dict:
        reverse = {v: k for k, v in HOSTED_COLUMN_ALIASES.get(kind, {}).items()}
        return {reverse.get(k, k): v for k, v in row.items()}

    def _request(self, method: str, path: str, **kwargs) -> Optional[httpx.Response]:
        try:
            resp = self.client.request(method, path, **kwargs)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                "hosted_request_failed",
                method=method,
                path=path,
                status=e.response.status_code,
                detail=e.response.text[:200],
            )
            return None
        except httpx.HTTPError as e:
            logger.error("hosted_unreachable", method=method, path=path, error=str(e))
            return None
        return resp

    def get_all(self, kind: str) -> Optional[list[dict]]:
        params = {"select": "*"}
        if kind in HOSTED_ORDER:
            params["order"] = HOSTED_ORDER[kind]
        resp = self._request("GET", f"/{kind}", params=params)
        if resp is None:
            return None
        return [self._from_hosted(kind, row) for row in resp.json()]

    def upsert(self, kind: str, record: dict) -> bool:
        resp = self._request(
            "POST",
            f"/{kind}",
            json=[self._to_hosted(kind, record)],
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
        )
        return resp is not None

    def delete_by_id(self, kind: str, record_id: str) -> bool:
        resp = self._request("DELETE", f"/{kind}", params={"id": f"eq.{record_id}"})
        return resp is not None

    def add_setting_value(self, key: str, value: Any) -> bool:
        resp = self._request(
            "POST",
            "/settings",
            params={"on_conflict": "key"},
            json=[{"key": key, "value": _setting_text(value)}],
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
        )
        return resp is not None

    def get_setting_values(self) -> Optional[dict[str, str]]:
        resp = self._request("GET", "/settings", params={"select": "key,value"})
        if resp is None:
            return None
        return {str(r["key"]): str(r["value"]) for r in resp.json()}


# -------------------------
# Startup selection + loading
# -------------------------

def open_store(settings) -> RecordStore:
    """
    Hosted store when credentials are configured and it answers, local SQLite
    otherwise. Decided once; callers keep the returned store for the session.
    """
    if settings.hosted_store_configured:
        hosted = SupabaseStore(settings.supabase_url, settings.supabase_key)
        if hosted.get_setting_values() is not None:
            logger.info("store_selected", store=hosted.name)
            return hosted
        hosted.close()
        logger.warning("hosted_store_unavailable_falling_back", store="local")

    local = SqliteStore.open(settings.db_path)
    logger.info("store_selected", store=local.name, db_path=str(settings.db_path))
    return local


def _float_setting(values: dict[str, str], key: str) -> float:
    try:
        return float(values.get(key) or 0)
    except ValueError:
        return 0.0


def _adjustments_setting(values: dict[str, str]) -> dict[str, float]:
    raw = values.get(SETTING_MANUAL_INVENTORY)
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except ValueError:
        logger.warning("bad_manual_inventory_setting", value=raw[:80])
        return {}
    return {str(k): float(v) for k, v in data.items() if v is not None}


def load_state(store: RecordStore, defaults: AppState, rules: Optional[PricingRules] = None) -> Optional[AppState]:
    """
    Read everything from `store` and merge it over `defaults` (stored products
    and ingredients win, defaults fill the gaps). Returns None when any table is
    unavailable so the caller can keep its in-memory state.
    """
    loaded: dict[str, list] = {}
    for kind in RECORD_TYPES:
        rows = store.get_all(kind)
        if rows is None:
            logger.error("load_state_incomplete", store=store.name, kind=kind)
            return None
        loaded[kind] = [from_record(kind, r) for r in rows]

    values = store.get_setting_values() or {}

    products = dict(defaults.products)
    products.update({p.id: p for p in loaded["products"]})
    ingredients = dict(defaults.ingredients)
    ingredients.update({i.id: i for i in loaded["ingredients"]})

    fees = PosFeeSettings(
        pos_fee_percent=_float_setting(values, SETTING_POS_FEE_PERCENT),
        pos_fee_manual=_float_setting(values, SETTING_POS_FEE_MANUAL),
        use_manual_pos_fee=values.get(SETTING_USE_MANUAL_POS_FEE) == "true",
    )

    return AppState(
        products=products,
        sales=loaded["sales"],
        fixed_costs=loaded["fixed_costs"],
        ingredients=ingredients,
        ingredient_batches=loaded["ingredient_batches"],
        strawberry_batches=loaded["strawberry_batches"],
        waste_entries=loaded["waste_entries"],
        manual_inventory_adjustments=_adjustments_setting(values),
        fees=fees,
        rules=rules or defaults.rules,
    )
