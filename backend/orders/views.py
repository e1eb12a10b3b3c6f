"""Consultation d'une commande par son propriétaire.
- GET /api/orders/{order_id}: état courant de la commande (suivi après paiement).
Sécurité:
- require_user: utilisateur connecté; seul le propriétaire (ou un admin) y accède.
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException

from backend.utils.security import require_user
from backend.orders import repository as orders_repository

router = APIRouter(prefix="/api/orders", tags=["Orders API"])


@router.get("/{order_id}")
def api_get_order(order_id: str, user: Dict[str, Any] = Depends(require_user)) -> Dict[str, Any]:
    order = orders_repository.get_order(order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    if order.user_id != str(user.get("id")) and user.get("role") != "admin":
        raise HTTPException(status_code=403, detail="Forbidden")
    return order.model_dump(mode="json")
