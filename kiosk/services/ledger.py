from __future__ import annotations

import math
from dataclasses import fields, replace
from typing import Any, Iterable, Optional

from kiosk.logging import get_logger
from kiosk.models import (
    SOURCE_MANUAL,
    SOURCE_POS,
    AppState,
    FixedCost,
    Ingredient,
    IngredientBatch,
    Product,
    Sale,
    StrawberryBatch,
    WasteEntry,
)
from kiosk.services.costing import waste_unit_cost
from kiosk.stores import (
    KIND_BY_TYPE,
    SETTING_MANUAL_INVENTORY,
    SETTING_POS_FEE_MANUAL,
    SETTING_POS_FEE_PERCENT,
    SETTING_USE_MANUAL_POS_FEE,
    RecordStore,
    to_record,
)
from kiosk.utils import iso_today, new_id

logger = get_logger(__name__)

VALID_UNITS = ("g", "pcs", "units")
VALID_SOURCES = (SOURCE_POS, SOURCE_MANUAL)


def _number(value: Any, label: str, *, positive: bool = False, non_negative: bool = False) -> float:
    try:
        v = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{label} must be a number.")
    if not math.isfinite(v):
        raise ValueError(f"{label} must be a finite number.")
    if positive and v <= 0:
        raise ValueError(f"{label} must be > 0.")
    if non_negative and v < 0:
        raise ValueError(f"{label} must be >= 0.")
    return v


def _quantity(value: Any) -> int:
    try:
        v = float(value)
    except (TypeError, ValueError):
        raise ValueError("Quantity must be a whole number.")
    if not math.isfinite(v) or not v.is_integer():
        raise ValueError("Quantity must be a whole number.")
    if v <= 0:
        raise ValueError("Quantity must be a positive whole number.")
    return int(v)


def _text(value: Any, label: str) -> str:
    s = str(value or "").strip()
    if not s:
        raise ValueError(f"{label} is required.")
    return s


def _updated(obj: Any, updates: dict) -> Any:
    allowed = {f.name for f in fields(obj)} - {"id"}
    unknown = set(updates) - allowed
    if unknown:
        raise ValueError(f"Unknown field(s): {', '.join(sorted(unknown))}.")
    return replace(obj, **updates)


class Ledger:
    """
    Owns the in-memory AppState and every mutation of it.

    Each change is applied to memory first and then mirrored to the store. A
    failed durable write is logged and left as is: memory stays ahead of storage
    until the next successful write of that record.
    """

    def __init__(self, state: AppState, store: Optional[RecordStore] = None):
        self.state = state
        self.store = store
        self.sync_failures = 0

    # -------------------------
    # store mirroring
    # -------------------------

    def _mirror(self, ok: bool, action: str, **ctx) -> bool:
        if not ok:
            self.sync_failures += 1
            logger.warning("durable_write_failed", action=action, store=self.store.name, **ctx)
        return ok

    def _save(self, obj: Any) -> bool:
        if self.store is None:
            return True
        kind = KIND_BY_TYPE[type(obj)]
        return self._mirror(self.store.upsert(kind, to_record(obj)), "upsert", kind=kind, id=obj.id)

    def _remove(self, cls: type, record_id: str) -> bool:
        if self.store is None:
            return True
        kind = KIND_BY_TYPE[cls]
        return self._mirror(self.store.delete_by_id(kind, record_id), "delete", kind=kind, id=record_id)

    def _setting(self, key: str, value: Any) -> bool:
        if self.store is None:
            return True
        return self._mirror(self.store.add_setting_value(key, value), "setting", key=key)

    def _apply(self, **changes) -> None:
        self.state = replace(self.state, **changes)

    # -------------------------
    # POS fee settings
    # -------------------------

    def set_pos_fee_percent(self, percent: Any) -> bool:
        v = _number(percent, "POS fee (%)", non_negative=True)
        self._apply(fees=replace(self.state.fees, pos_fee_percent=v))
        return self._setting(SETTING_POS_FEE_PERCENT, v)

    def set_pos_fee_manual(self, amount: Any) -> bool:
        v = _number(amount, "POS fee amount", non_negative=True)
        self._apply(fees=replace(self.state.fees, pos_fee_manual=v))
        return self._setting(SETTING_POS_FEE_MANUAL, v)

    def set_use_manual_pos_fee(self, use_manual: bool) -> bool:
        self._apply(fees=replace(self.state.fees, use_manual_pos_fee=bool(use_manual)))
        return self._setting(SETTING_USE_MANUAL_POS_FEE, bool(use_manual))

    # -------------------------
    # Products
    # -------------------------

    def add_product(self, *, name: str, price: Any, product_id: Optional[str] = None, **recipe: Any) -> Product:
        product = Product(
            id=product_id or new_id("p"),
            name=_text(name, "Product name"),
            price=_number(price, "Price", non_negative=True),
        )
        product = self._validated_product(product, recipe)
        self._apply(products={**self.state.products, product.id: product})
        self._save(product)
        return product

    def _validated_product(self, product: Product, updates: dict) -> Product:
        clean: dict[str, Any] = {}
        for k, v in updates.items():
            if k == "name":
                clean[k] = _text(v, "Product name")
            elif k == "use_manual_cost":
                clean[k] = bool(v)
            else:
                clean[k] = _number(v, k.replace("_", " ").capitalize(), non_negative=True)
        return _updated(product, clean)

    def update_product(self, product_id: str, **updates: Any) -> Product:
        current = self.state.products.get(product_id)
        if current is None:
            raise ValueError("Product not found.")
        product = self._validated_product(current, updates)
        self._apply(products={**self.state.products, product_id: product})
        self._save(product)
        return product

    def delete_product(self, product_id: str) -> bool:
        # Past sales keep pointing at the id; calculators skip them.
        products = {k: v for k, v in self.state.products.items() if k != product_id}
        self._apply(products=products)
        return self._remove(Product, product_id)

    # -------------------------
    # Sales
    # -------------------------

    def add_sale(
        self,
        *,
        date: str,
        product_id: str,
        qty: Any,
        unit_price: Any = None,
        source: str = SOURCE_MANUAL,
        transaction_id: Optional[str] = None,
    ) -> Sale:
        product = self.state.products.get(product_id)
        if product is None:
            raise ValueError("Select a product.")
        if source not in VALID_SOURCES:
            raise ValueError("Invalid source. Use 'pos' or 'manual'.")
        price = product.price if unit_price is None else _number(unit_price, "Unit price")

        sale = Sale(
            id=new_id("s"),
            date=_text(date, "Date"),
            product_id=product_id,
            qty=_quantity(qty),
            unit_price=price,
            source=source,
            transaction_id=transaction_id or None,
        )
        self._apply(sales=[*self.state.sales, sale])
        self._save(sale)
        return sale

    def checkout(self, items: Iterable[tuple[str, Any]], *, date: Optional[str] = None) -> list[Sale]:
        """
        Post one POS order: every line shares a transaction id so the automatic
        fee is charged once for the whole order. Prices are the current product
        prices, frozen on each sale.
        """
        lines = [(pid, qty) for pid, qty in items]
        if not lines:
            raise ValueError("No items in order.")
        for pid, qty in lines:
            if pid not in self.state.products:
                raise ValueError(f"Unknown product: {pid}.")
            _quantity(qty)

        txn = new_id("t")
        day = date or iso_today()
        return [
            self.add_sale(date=day, product_id=pid, qty=qty, source=SOURCE_POS, transaction_id=txn)
            for pid, qty in lines
        ]

    def delete_sale(self, sale_id: str) -> bool:
        self._apply(sales=[s for s in self.state.sales if s.id != sale_id])
        return self._remove(Sale, sale_id)

    # -------------------------
    # Fixed costs
    # -------------------------

    def add_fixed_cost(self, *, name: str, amount: Any) -> FixedCost:
        cost = FixedCost(id=new_id("f"), name=_text(name, "Name"), amount=_number(amount, "Amount", non_negative=True))
        self._apply(fixed_costs=[*self.state.fixed_costs, cost])
        self._save(cost)
        return cost

    def update_fixed_cost(self, cost_id: str, **updates: Any) -> FixedCost:
        if "amount" in updates:
            updates["amount"] = _number(updates["amount"], "Amount", non_negative=True)
        if "name" in updates:
            updates["name"] = _text(updates["name"], "Name")

        out: list[FixedCost] = []
        updated: Optional[FixedCost] = None
        for c in self.state.fixed_costs:
            if c.id == cost_id:
                updated = _updated(c, updates)
                out.append(updated)
            else:
                out.append(c)
        if updated is None:
            raise ValueError("Fixed cost not found.")
        self._apply(fixed_costs=out)
        self._save(updated)
        return updated

    def delete_fixed_cost(self, cost_id: str) -> bool:
        self._apply(fixed_costs=[c for c in self.state.fixed_costs if c.id != cost_id])
        return self._remove(FixedCost, cost_id)

    # -------------------------
    # Ingredients
    # -------------------------

    def add_ingredient(
        self,
        *,
        name: str,
        unit: str,
        default_bulk_qty: Any = 0,
        default_bulk_cost: Any = 0,
        ingredient_id: Optional[str] = None,
    ) -> Ingredient:
        if unit not in VALID_UNITS:
            raise ValueError(f"Unit must be one of: {', '.join(VALID_UNITS)}.")
        ing = Ingredient(
            id=ingredient_id or new_id("ing"),
            name=_text(name, "Ingredient name"),
            unit=unit,
            default_bulk_qty=_number(default_bulk_qty, "Default bulk quantity", non_negative=True),
            default_bulk_cost=_number(default_bulk_cost, "Default bulk cost", non_negative=True),
        )
        self._apply(ingredients={**self.state.ingredients, ing.id: ing})
        self._save(ing)
        return ing

    def update_ingredient(self, ingredient_id: str, **updates: Any) -> Ingredient:
        current = self.state.ingredients.get(ingredient_id)
        if current is None:
            raise ValueError("Ingredient not found.")
        for k in ("default_bulk_qty", "default_bulk_cost"):
            if k in updates:
                updates[k] = _number(updates[k], k.replace("_", " ").capitalize(), non_negative=True)
        if "unit" in updates and updates["unit"] not in VALID_UNITS:
            raise ValueError(f"Unit must be one of: {', '.join(VALID_UNITS)}.")
        ing = _updated(current, updates)
        self._apply(ingredients={**self.state.ingredients, ingredient_id: ing})
        self._save(ing)
        return ing

    def delete_ingredient(self, ingredient_id: str) -> bool:
        ingredients = {k: v for k, v in self.state.ingredients.items() if k != ingredient_id}
        self._apply(ingredients=ingredients)
        return self._remove(Ingredient, ingredient_id)

    # -------------------------
    # Ingredient batches
    # -------------------------

    def add_ingredient_batch(self, *, ingredient_id: str, name: str, date: str, bulk_qty: Any, bulk_cost: Any) -> IngredientBatch:
        if ingredient_id not in self.state.ingredients:
            raise ValueError("Ingredient not found.")
        batch = IngredientBatch(
            id=new_id("ib"),
            ingredient_id=ingredient_id,
            name=_text(name, "Batch name"),
            date=_text(date, "Date"),
            bulk_qty=_number(bulk_qty, "Bulk quantity", positive=True),
            bulk_cost=_number(bulk_cost, "Bulk cost", non_negative=True),
        )
        self._apply(ingredient_batches=[*self.state.ingredient_batches, batch])
        self._save(batch)
        return batch

    def delete_ingredient_batch(self, batch_id: str) -> bool:
        self._apply(ingredient_batches=[b for b in self.state.ingredient_batches if b.id != batch_id])
        return self._remove(IngredientBatch, batch_id)

    # -------------------------
    # Strawberry batches
    # -------------------------

    def add_strawberry_batch(
        self,
        *,
        name: str,
        date: str,
        bulk_weight_kg: Any,
        bulk_cost: Any,
        avg_weight_per_piece: Any,
    ) -> StrawberryBatch:
        batch = StrawberryBatch(
            id=new_id("sb"),
            name=_text(name, "Batch name"),
            date=_text(date, "Date"),
            bulk_weight_g=_number(bulk_weight_kg, "Bulk weight (kg)", positive=True) * 1000.0,
            bulk_cost=_number(bulk_cost, "Bulk cost", non_negative=True),
            avg_weight_per_piece=_number(avg_weight_per_piece, "Average weight per piece", positive=True),
        )
        self._apply(strawberry_batches=[*self.state.strawberry_batches, batch])
        self._save(batch)
        return batch

    def update_strawberry_batch(self, batch_id: str, **updates: Any) -> StrawberryBatch:
        # Accept the form's kg figure; grams are what is stored.
        if "bulk_weight_kg" in updates:
            updates["bulk_weight_g"] = _number(updates.pop("bulk_weight_kg"), "Bulk weight (kg)", positive=True) * 1000.0
        # Same rules as add_strawberry_batch: weights must stay positive.
        if "bulk_weight_g" in updates:
            updates["bulk_weight_g"] = _number(updates["bulk_weight_g"], "Bulk weight (g)", positive=True)
        if "avg_weight_per_piece" in updates:
            updates["avg_weight_per_piece"] = _number(
                updates["avg_weight_per_piece"], "Average weight per piece", positive=True
            )
        if "bulk_cost" in updates:
            updates["bulk_cost"] = _number(updates["bulk_cost"], "Bulk cost", non_negative=True)
        for k in ("name", "date"):
            if k in updates:
                updates[k] = _text(updates[k], k.capitalize())

        out: list[StrawberryBatch] = []
        updated: Optional[StrawberryBatch] = None
        for b in self.state.strawberry_batches:
            if b.id == batch_id:
                updated = _updated(b, updates)
                out.append(updated)
            else:
                out.append(b)
        if updated is None:
            raise ValueError("Strawberry batch not found.")
        self._apply(strawberry_batches=out)
        self._save(updated)
        return updated

    def delete_strawberry_batch(self, batch_id: str) -> bool:
        self._apply(strawberry_batches=[b for b in self.state.strawberry_batches if b.id != batch_id])
        return self._remove(StrawberryBatch, batch_id)

    # -------------------------
    # Waste
    # -------------------------

    def add_waste_entry(self, *, date: str, ingredient_id: str, qty: Any, reason: str = "") -> WasteEntry:
        if ingredient_id not in self.state.ingredients:
            raise ValueError("Ingredient not found.")
        amount = _number(qty, "Quantity", positive=True)
        # Cost is frozen now; later batch prices do not revalue old waste.
        entry = WasteEntry(
            id=new_id("w"),
            date=_text(date, "Date"),
            ingredient_id=ingredient_id,
            qty=amount,
            reason=str(reason or "").strip(),
            estimated_cost=amount * waste_unit_cost(self.state, ingredient_id),
        )
        self._apply(waste_entries=[*self.state.waste_entries, entry])
        self._save(entry)
        return entry

    def delete_waste_entry(self, entry_id: str) -> bool:
        self._apply(waste_entries=[w for w in self.state.waste_entries if w.id != entry_id])
        return self._remove(WasteEntry, entry_id)

    # -------------------------
    # Manual inventory
    # -------------------------

    def set_manual_inventory(self, ingredient_id: str, remaining: Any) -> bool:
        """Set the counted remaining quantity, or clear it with None."""
        adjustments = dict(self.state.manual_inventory_adjustments)
        if remaining is None:
            adjustments.pop(ingredient_id, None)
        else:
            adjustments[ingredient_id] = _number(remaining, "Remaining quantity")
        self._apply(manual_inventory_adjustments=adjustments)
        return self._setting(SETTING_MANUAL_INVENTORY, adjustments)

    # -------------------------
    # Reset
    # -------------------------

    def reset(self, defaults: AppState) -> None:
        # In-memory only; use demo_data.wipe_all to clear the store.
        self.state = defaults
