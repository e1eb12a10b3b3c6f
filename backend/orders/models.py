"""Schémas pydantic des commandes.
- Les lignes capturent le prix unitaire au moment du checkout (pas de référence vivante au produit).
- total_amount est calculé une fois à la création et n'est jamais recalculé.
"""
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_serializer

CENTS = Decimal("0.01")


def to_money(value) -> Decimal:
    """Convertit str|int|float|Decimal en Decimal arrondi au centime."""
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


class OrderStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    # Compensation du checkout lorsque la session de paiement n'a pas pu être créée
    ABANDONED = "abandoned"


class OrderItem(BaseModel):
    product_id: str
    quantity: int = Field(ge=1)
    price: Decimal = Field(ge=0)

    @field_serializer("price")
    def _ser_price(self, v: Decimal) -> str:
        return f"{v:.2f}"


class Order(BaseModel):
    id: str
    user_id: str
    items: List[OrderItem]
    total_amount: Decimal = Field(ge=0)
    status: OrderStatus = OrderStatus.PENDING
    payment_id: Optional[str] = None
    created_at: Optional[datetime] = None

    @field_serializer("total_amount")
    def _ser_total(self, v: Decimal) -> str:
        return f"{v:.2f}"


def compute_total(items: List[OrderItem]) -> Decimal:
    return to_money(sum((it.price * it.quantity for it in items), Decimal("0")))
