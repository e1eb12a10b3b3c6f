"""Enregistrement de paiement: lie une commande à l'order_tracking_id Pesapal."""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, field_serializer

PENDING = "pending"


class PaymentRecord(BaseModel):
    id: str
    user_id: str
    order_id: str
    # Clé de réconciliation émise par Pesapal
    tracking_id: str
    merchant_reference: Optional[str] = None
    amount: Decimal
    # Vocabulaire libre du fournisseur ("Completed", "Failed", "Invalid", ...)
    status: str = PENDING
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_serializer("amount")
    def _ser_amount(self, v: Decimal) -> str:
        return f"{v:.2f}"
