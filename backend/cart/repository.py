"""
Accès aux paniers (table 'carts': une ligne par utilisateur, colonne JSON 'items').
Forme d'une ligne: {"user_id": "...", "items": [{"product_id": "...", "quantity": 2}, ...]}
"""
from typing import Any, Dict, Optional
import logging

import backend.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

# module backend.cart.repository
def get_cart(user_id: str) -> Optional[Dict[str, Any]]:
    """Retourne le panier brut de l'utilisateur, ou None s'il n'existe pas."""
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("carts")
            .select("user_id, items")
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
    except Exception:
        logger.exception("cart.repository.get_cart failed user_id=%s", user_id)
        raise
    rows = res.data or []
    return rows[0] if rows else None

def clear_cart(user_id: str) -> None:
    """Vide le panier (items = []) sans supprimer la ligne."""
    try:
        (
            supabase_client.get_service_supabase()
            .table("carts")
            .update({"items": []})
            .eq("user_id", user_id)
            .execute()
        )
    except Exception:
        logger.exception("cart.repository.clear_cart failed user_id=%s", user_id)
        raise
