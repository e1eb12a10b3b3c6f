"""Endpoint du checkout.
- POST /api/checkout: convertit le panier de l'utilisateur authentifié en commande
  et ouvre une session de paiement Pesapal.
Sécurité:
- require_user: impose que l'utilisateur soit connecté.
- optional_rate_limit: limite la fréquence des tentatives de checkout.
Erreurs (rendues par le handler PaymentFlowError):
- 400 EmptyCartError, 409 ProductUnavailableError, 500 UpstreamAuthError / PaymentSessionError.
"""
from typing import Any, Dict
import logging

from fastapi import APIRouter, Depends

from backend.utils.security import require_user
from backend.utils.rate_limit import optional_rate_limit
from backend.checkout import service as checkout_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/checkout", tags=["Checkout API"])


@router.post("", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def api_checkout(user: Dict[str, Any] = Depends(require_user)) -> Dict[str, Any]:
    """Crée la commande et la session Pesapal, puis renvoie l'URL de redirection.
    Réponse: {redirect_url, order_tracking_id, order, payment}
    """
    result = checkout_service.checkout(user)
    return {
        "redirect_url": result["redirect_url"],
        "order_tracking_id": result["order_tracking_id"],
        "order": result["order"].model_dump(mode="json"),
        "payment": result["payment"].model_dump(mode="json"),
    }
