"""
Cas d'usage 'payments': réconciliation du statut Pesapal avec paiements et commandes.
Deux points d'entrée, même logique:
- pull_status: l'appelant interroge le statut (polling navigateur).
- handle_notification: l'IPN Pesapal nous notifie; la notification n'est qu'un déclencheur,
  le statut est toujours relu via GetTransactionStatus.
Transitions de commande (gardées par compare-and-swap sur 'pending'):
- "Completed" -> paid
- "Failed"    -> cancelled
- autre statut -> inchangé
"""
from typing import Any, Dict, Optional
import logging

from backend.orders import repository as orders_repository
from backend.orders.models import OrderStatus
from backend.payments import repository
from backend.payments.errors import MissingTrackingIdError
from backend.payments.pesapal_client import (
    COMPLETED_STATUS,
    FAILED_STATUS,
    PesapalClient,
    get_pesapal_client,
    status_of,
)

logger = logging.getLogger(__name__)

def target_order_status(provider_status: str) -> Optional[OrderStatus]:
    normalized = (provider_status or "").strip().lower()
    if normalized == COMPLETED_STATUS.lower():
        return OrderStatus.PAID
    if normalized == FAILED_STATUS.lower():
        return OrderStatus.CANCELLED
    return None

def apply_provider_status(tracking_id: str, provider_status: str) -> Dict[str, Any]:
    """
    Reflète le statut fournisseur sur le paiement puis, si besoin, fait avancer la commande.
    Retour: {"payment_found": bool, "order_id": str|None, "order_status": str|None, "transitioned": bool}
    """
    result: Dict[str, Any] = {"payment_found": False, "order_id": None, "order_status": None, "transitioned": False}

    payment = repository.update_status_by_tracking_id(tracking_id, provider_status)
    if payment is None:
        logger.info("payments.reconcile: no payment for tracking_id=%s", tracking_id)
        return result
    result["payment_found"] = True
    result["order_id"] = payment.order_id

    target = target_order_status(provider_status)
    if target is None:
        return result

    changed = orders_repository.transition_status(payment.order_id, target, from_status=OrderStatus.PENDING)
    result["transitioned"] = changed
    if changed:
        result["order_status"] = target.value
        logger.info("payments.reconcile: order %s -> %s (tracking_id=%s)", payment.order_id, target.value, tracking_id)
    else:
        # Commande absente ou ayant déjà quitté 'pending'
        logger.info(
            "payments.reconcile: order %s not moved to %s (tracking_id=%s)",
            payment.order_id, target.value, tracking_id,
        )
    return result

def pull_status(tracking_id: str, *, client: Optional[PesapalClient] = None) -> Dict[str, Any]:
    """
    Interroge Pesapal, réconcilie, et renvoie le payload brut du fournisseur.
    Erreurs: UpstreamAuthError, TransactionStatusError.
    """
    client = client or get_pesapal_client()
    payload = client.get_transaction_status(tracking_id)
    apply_provider_status(tracking_id, status_of(payload))
    return payload

def handle_notification(
    tracking_id: Optional[str],
    merchant_reference: Optional[str] = None,
    notification_type: Optional[str] = None,
    *,
    client: Optional[PesapalClient] = None,
) -> Dict[str, Any]:
    """
    Traite une IPN Pesapal et renvoie l'accusé de réception attendu par le fournisseur.
    - MissingTrackingIdError si OrderTrackingId est absent (aucune écriture).
    - Toute autre erreur interne est journalisée: Pesapal reçoit toujours l'accusé,
      sinon il rejoue la notification.
    """
    if not (tracking_id or "").strip():
        raise MissingTrackingIdError()
    tracking_id = tracking_id.strip()

    try:
        client = client or get_pesapal_client()
        payload = client.get_transaction_status(tracking_id)
        apply_provider_status(tracking_id, status_of(payload))
    except Exception:
        logger.exception(
            "payments.ipn: reconciliation failed tracking_id=%s merchant_reference=%s type=%s",
            tracking_id, merchant_reference, notification_type,
        )

    return {
        "orderNotificationType": notification_type,
        "orderTrackingId": tracking_id,
        "orderMerchantReference": merchant_reference,
        "status": 200,
    }
