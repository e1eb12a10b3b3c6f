"""
Accès lecture seule au catalogue (table 'products').
Utilisé au checkout pour figer le prix unitaire de chaque ligne.
"""
from typing import Any, Dict, Iterable, List
import logging

import backend.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

# module backend.products.repository
def fetch_products_by_ids(ids: List[str]) -> List[dict]:
    """
    Récupère les produits par leurs IDs.
    - Retourne [] si ids vide.
    - Les erreurs d'accès sont journalisées puis propagées: un catalogue
      injoignable ne doit pas être confondu avec des produits supprimés.
    """
    if not ids:
        return []
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("products")
            .select("*")
            .in_("id", [str(i) for i in ids])
            .execute()
        )
        return res.data or []
    except Exception:
        logger.exception("products.repository.fetch_products_by_ids failed ids=%s", ids)
        raise

def get_products_map(ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
    """Retourne un dict {id: produit} à partir d'une liste d'IDs."""
    products = fetch_products_by_ids(list(ids))
    return {str(p.get("id")): p for p in products}
