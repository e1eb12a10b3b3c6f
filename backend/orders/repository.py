"""
Accès aux commandes (table 'orders').
- Écritures via le client service-role.
- Les transitions de statut sont conditionnelles (compare-and-swap sur le statut courant).
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional
from uuid import uuid4
import logging

import backend.infra.supabase_client as supabase_client
from backend.orders.models import Order, OrderItem, OrderStatus

logger = logging.getLogger(__name__)

TABLE = "orders"

# module backend.orders.repository
def create_order(*, user_id: str, items: List[OrderItem], total_amount: Decimal) -> Order:
    """Insère une commande 'pending' et retourne l'Order persistée."""
    row = Order(
        id=str(uuid4()),
        user_id=user_id,
        items=items,
        total_amount=total_amount,
        status=OrderStatus.PENDING,
        created_at=datetime.now(timezone.utc),
    ).model_dump(mode="json")
    try:
        res = supabase_client.get_service_supabase().table(TABLE).insert(row).execute()
    except Exception:
        logger.exception("orders.repository.create_order failed user_id=%s", user_id)
        raise
    data = res.data or [row]
    return Order.model_validate(data[0])

def get_order(order_id: str) -> Optional[Order]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table(TABLE)
            .select("*")
            .eq("id", order_id)
            .limit(1)
            .execute()
        )
    except Exception:
        logger.exception("orders.repository.get_order failed order_id=%s", order_id)
        raise
    rows = res.data or []
    return Order.model_validate(rows[0]) if rows else None

def link_payment(order_id: str, payment_id: str) -> bool:
    """Renseigne payment_id une seule fois (jamais réassigné)."""
    try:
        res = (
            supabase_client.get_service_supabase()
            .table(TABLE)
            .update({"payment_id": payment_id})
            .eq("id", order_id)
            .is_("payment_id", "null")
            .execute()
        )
    except Exception:
        logger.exception("orders.repository.link_payment failed order_id=%s", order_id)
        raise
    return bool(res.data)

def transition_status(order_id: str, to_status: OrderStatus, from_status: OrderStatus = OrderStatus.PENDING) -> bool:
    """
    UPDATE orders SET status=to WHERE id=order_id AND status=from.
    Retourne True si une ligne a changé, False si la commande n'était plus dans from_status.
    """
    try:
        res = (
            supabase_client.get_service_supabase()
            .table(TABLE)
            .update({"status": OrderStatus(to_status).value})
            .eq("id", order_id)
            .eq("status", OrderStatus(from_status).value)
            .execute()
        )
    except Exception:
        logger.exception("orders.repository.transition_status failed order_id=%s to=%s", order_id, to_status)
        raise
    return bool(res.data)
