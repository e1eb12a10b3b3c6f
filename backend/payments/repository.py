"""
Accès aux enregistrements de paiement (table 'payments').
La clé de réconciliation est tracking_id (order_tracking_id Pesapal).
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import uuid4
import logging

import backend.infra.supabase_client as supabase_client
from backend.payments.models import PaymentRecord, PENDING

logger = logging.getLogger(__name__)

TABLE = "payments"

# module backend.payments.repository
def create_payment(
    *,
    user_id: str,
    order_id: str,
    tracking_id: str,
    merchant_reference: str,
    amount: Decimal,
) -> PaymentRecord:
    now = datetime.now(timezone.utc)
    row = PaymentRecord(
        id=str(uuid4()),
        user_id=user_id,
        order_id=order_id,
        tracking_id=tracking_id,
        merchant_reference=merchant_reference,
        amount=amount,
        status=PENDING,
        created_at=now,
        updated_at=now,
    ).model_dump(mode="json")
    try:
        res = supabase_client.get_service_supabase().table(TABLE).insert(row).execute()
    except Exception:
        logger.exception("payments.repository.create_payment failed order_id=%s tracking_id=%s", order_id, tracking_id)
        raise
    data = res.data or [row]
    return PaymentRecord.model_validate(data[0])

def update_status_by_tracking_id(tracking_id: str, status: str) -> Optional[PaymentRecord]:
    """
    Reflète le statut fournisseur sur l'enregistrement.
    Retourne l'enregistrement mis à jour, ou None si aucun ne correspond.
    """
    try:
        res = (
            supabase_client.get_service_supabase()
            .table(TABLE)
            .update({"status": status, "updated_at": datetime.now(timezone.utc).isoformat()})
            .eq("tracking_id", tracking_id)
            .execute()
        )
    except Exception:
        logger.exception("payments.repository.update_status_by_tracking_id failed tracking_id=%s", tracking_id)
        raise
    rows = res.data or []
    return PaymentRecord.model_validate(rows[0]) if rows else None
