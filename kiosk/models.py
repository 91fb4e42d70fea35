from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from kiosk.utils import safe_div

STRAWBERRY = "strawberry"
CHOCOLATE = "chocolate"
KUNAFA = "kunafa"
CUP = "cup"
STICKS = "sticks"

SOURCE_POS = "pos"
SOURCE_MANUAL = "manual"


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    price: float
    use_manual_cost: bool = False
    manual_cost_per_unit: float = 0.0
    # Recipe per unit sold, only read when use_manual_cost is False
    strawberries_per_unit: float = 0.0  # pieces
    chocolate_g_per_unit: float = 0.0
    kunafa_g_per_unit: float = 0.0
    cups_per_unit: float = 0.0
    sticks_per_unit: float = 0.0


@dataclass(frozen=True)
class Sale:
    id: str
    date: str
    product_id: str
    qty: int
    unit_price: float
    source: str = SOURCE_MANUAL
    transaction_id: Optional[str] = None

    @property
    def revenue(self) -> float:
        return self.qty * self.unit_price


@dataclass(frozen=True)
class FixedCost:
    id: str
    name: str
    amount: float


@dataclass(frozen=True)
class Ingredient:
    id: str
    name: str
    unit: str  # g / pcs / units
    default_bulk_qty: float = 0.0
    default_bulk_cost: float = 0.0

    @property
    def default_cost_per_unit(self) -> float:
        return safe_div(self.default_bulk_cost, self.default_bulk_qty)


@dataclass(frozen=True)
class IngredientBatch:
    id: str
    ingredient_id: str
    name: str
    date: str
    bulk_qty: float
    bulk_cost: float

    @property
    def cost_per_unit(self) -> float:
        return safe_div(self.bulk_cost, self.bulk_qty)


@dataclass(frozen=True)
class StrawberryBatch:
    """
    Strawberry purchase. Weight is stored in grams; kg, cost per gram and cost
    per piece are derived on every read so they can never drift from the inputs.
    """

    id: str
    name: str
    date: str
    bulk_weight_g: float
    bulk_cost: float
    avg_weight_per_piece: float  # grams

    @property
    def bulk_weight_kg(self) -> float:
        return self.bulk_weight_g / 1000.0

    @property
    def cost_per_gram(self) -> float:
        return safe_div(self.bulk_cost, self.bulk_weight_g)

    @property
    def cost_per_piece(self) -> float:
        return self.cost_per_gram * self.avg_weight_per_piece


@dataclass(frozen=True)
class WasteEntry:
    id: str
    date: str
    ingredient_id: str
    qty: float
    reason: str
    estimated_cost: float  # frozen at entry time


@dataclass(frozen=True)
class PosFeeSettings:
    pos_fee_percent: float = 0.0
    pos_fee_manual: float = 0.0
    use_manual_pos_fee: bool = False


@dataclass(frozen=True)
class PricingRules:
    pos_fixed_charge: float = 1.0
    pos_fee_rate: float = 0.026
    tips_product_id: str = "tips"
    specialty_product_id: str = "rocky"
    specialty_deduction_per_unit: float = 50.0
    default_strawberry_weight_g: float = 20.0
    strawberry_ingredient_id: str = STRAWBERRY


@dataclass(frozen=True)
class AppState:
    products: dict[str, Product] = field(default_factory=dict)
    sales: list[Sale] = field(default_factory=list)
    fixed_costs: list[FixedCost] = field(default_factory=list)
    ingredients: dict[str, Ingredient] = field(default_factory=dict)
    ingredient_batches: list[IngredientBatch] = field(default_factory=list)
    strawberry_batches: list[StrawberryBatch] = field(default_factory=list)
    waste_entries: list[WasteEntry] = field(default_factory=list)
    manual_inventory_adjustments: dict[str, float] = field(default_factory=dict)
    fees: PosFeeSettings = field(default_factory=PosFeeSettings)
    rules: PricingRules = field(default_factory=PricingRules)


# -------------------------
# Derived (calculator output)
# -------------------------

@dataclass(frozen=True)
class IngredientUsage:
    strawberries_g: float = 0.0
    strawberries_pcs: float = 0.0
    chocolate_g: float = 0.0
    kunafa_g: float = 0.0
    cups_used: float = 0.0
    sticks_used: float = 0.0

    def for_ingredient(self, ingredient_id: str) -> float:
        return {
            STRAWBERRY: self.strawberries_g,
            CHOCOLATE: self.chocolate_g,
            KUNAFA: self.kunafa_g,
            CUP: self.cups_used,
            STICKS: self.sticks_used,
        }.get(ingredient_id, 0.0)


@dataclass(frozen=True)
class IngredientInventory:
    ingredient_id: str
    name: str
    unit: str
    total_purchased: float
    total_used: float
    total_wasted: float
    calculated_remaining: float
    remaining: float
    total_cost: float
    cost_per_unit: float
    manually_adjusted: bool = False


@dataclass(frozen=True)
class DashboardStats:
    gross_revenue: float
    net_revenue: float
    net_revenue_excluding_specialty: float
    tips_revenue: float
    specialty_deduction: float
    pos_fees: float
    auto_pos_fees: float
    total_var_cost: float
    cost_of_goods_sold: float
    profit_before_fixed: float
    fixed_total: float
    net_after_fixed: float
    remaining_to_breakeven: float
    breakeven_achieved: bool
    total_units: int
    total_waste_cost: float
    usage: IngredientUsage
    inventory: tuple[IngredientInventory, ...]

    def remaining(self, ingredient_id: str) -> float:
        for inv in self.inventory:
            if inv.ingredient_id == ingredient_id:
                return inv.remaining
        return 0.0


@dataclass(frozen=True)
class SalesLedgerRow:
    index: int
    sale: Sale
    product_name: str
    manual_cost: bool
    revenue: float
    cost_per_unit: float
    var_cost: float
    profit_before_fixed: float
    cumulative_revenue: float
    cumulative_profit: float
    net_after_fixed: float
    is_breakeven: bool
    remaining_to_breakeven: float
    strawberry_g: float
    chocolate_g: float
    kunafa_g: float
    batch_used: str
    pos_fee: float
