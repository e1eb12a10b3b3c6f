"""Couche service du checkout Pesapal.
Rôles:
- Transformer le panier de l'utilisateur en commande 'pending' à prix figés.
- Ouvrir une session de paiement hébergée Pesapal et la relier à la commande.
- Vider le panier en dernier, une fois commande et paiement persistés.
Compensation:
- Le jeton Pesapal est obtenu avant toute écriture (UpstreamAuthError => rien n'est créé).
- Tout échec après la création de la commande la fait passer 'pending' -> 'abandoned'
  puis l'erreur est propagée; le panier reste intact pour un nouvel essai.
"""
from decimal import InvalidOperation
from typing import Any, Dict, List, Optional
from uuid import uuid4
import logging

from backend import config
from backend.cart import repository as cart_repository
from backend.cart import service as cart_service
from backend.orders import repository as orders_repository
from backend.orders.models import Order, OrderItem, OrderStatus, compute_total, to_money
from backend.payments import repository as payments_repository
from backend.payments.errors import EmptyCartError, ProductUnavailableError
from backend.payments.pesapal_client import PesapalClient, get_pesapal_client

logger = logging.getLogger(__name__)

def new_merchant_reference() -> str:
    """Référence marchande unique par tentative (indépendante de l'id de commande)."""
    return f"order_{uuid4().hex}"

def build_order_items(lines: List[Dict[str, Any]]) -> List[OrderItem]:
    """
    Fige prix unitaire et quantité de chaque ligne.
    - ProductUnavailableError si un produit a disparu ou n'a pas de prix exploitable.
    """
    missing = [line["product_id"] for line in lines if not line.get("product")]
    if missing:
        raise ProductUnavailableError(missing)

    items: List[OrderItem] = []
    for line in lines:
        product = line["product"]
        try:
            price = to_money(product.get("price"))
        except (InvalidOperation, TypeError, ValueError):
            raise ProductUnavailableError([line["product_id"]])
        if price < 0:
            raise ProductUnavailableError([line["product_id"]])
        items.append(OrderItem(product_id=line["product_id"], quantity=line["quantity"], price=price))
    return items

def build_order_request(order: Order, user: Dict[str, Any], merchant_reference: str) -> Dict[str, Any]:
    """Corps de Transactions/SubmitOrderRequest."""
    return {
        "id": merchant_reference,
        "currency": config.PESAPAL_CURRENCY,
        "amount": float(order.total_amount),
        "description": config.CHECKOUT_DESCRIPTION,
        "callback_url": config.PESAPAL_CALLBACK_URL,
        "cancellation_url": config.PESAPAL_CANCEL_URL,
        "notification_id": config.PESAPAL_IPN_ID,
        "billing_address": {
            "email_address": user.get("email") or "",
            "first_name": user.get("name") or "",
            "phone_number": user.get("phone") or config.DEFAULT_PHONE_NUMBER,
            "country_code": config.PESAPAL_COUNTRY_CODE,
        },
    }

def _abandon(order: Order) -> None:
    try:
        if orders_repository.transition_status(order.id, OrderStatus.ABANDONED):
            logger.warning("checkout: order %s marked abandoned", order.id)
    except Exception:
        # L'erreur d'origine reste celle propagée à l'appelant
        logger.exception("checkout: compensation failed for order %s", order.id)

def checkout(user: Dict[str, Any], *, client: Optional[PesapalClient] = None) -> Dict[str, Any]:
    """
    Convertit le panier en commande + session Pesapal.
    Retour: {"redirect_url", "order_tracking_id", "order": Order, "payment": PaymentRecord}
    Erreurs: EmptyCartError, ProductUnavailableError, UpstreamAuthError, PaymentSessionError.
    """
    user_id = str(user.get("id") or "")
    lines = cart_service.load_cart_lines(user_id)
    if not lines:
        raise EmptyCartError()

    items = build_order_items(lines)
    total_amount = compute_total(items)

    client = client or get_pesapal_client()
    client.token_cache.get_token()

    order = orders_repository.create_order(user_id=user_id, items=items, total_amount=total_amount)
    logger.info("checkout: order %s created user_id=%s total=%s", order.id, user_id, order.total_amount)

    merchant_reference = new_merchant_reference()
    try:
        session = client.submit_order_request(build_order_request(order, user, merchant_reference))
        tracking_id = str(session["order_tracking_id"])
        payment = payments_repository.create_payment(
            user_id=user_id,
            order_id=order.id,
            tracking_id=tracking_id,
            merchant_reference=merchant_reference,
            amount=order.total_amount,
        )
        orders_repository.link_payment(order.id, payment.id)
    except Exception:
        _abandon(order)
        raise

    order = order.model_copy(update={"payment_id": payment.id})
    logger.info("checkout: payment session %s opened for order %s", tracking_id, order.id)

    try:
        cart_repository.clear_cart(user_id)
    except Exception:
        # Commande et session existent déjà: on renvoie quand même la redirection
        logger.exception("checkout: cart not cleared user_id=%s order=%s", user_id, order.id)

    return {
        "redirect_url": session["redirect_url"],
        "order_tracking_id": tracking_id,
        "order": order,
        "payment": payment,
    }
