"""
Lecture du panier avec résolution des produits (snapshot pour le checkout).
"""
from typing import Any, Dict, List

from backend.cart import repository
from backend.payments.errors import InvalidCartItemError
from backend.products import repository as products_repository

def _parse_quantity(raw: Any) -> int:
    """Quantité entière (int, float entier ou chaîne de chiffres). ValueError sinon."""
    if raw is None:
        return 0
    if isinstance(raw, bool):
        raise ValueError(f"invalid quantity {raw!r}")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float) and raw.is_integer():
        return int(raw)
    if isinstance(raw, str):
        text = raw.strip()
        if text.lstrip("-").isdigit():
            return int(text)
    raise ValueError(f"invalid quantity {raw!r}")

def load_cart_lines(user_id: str) -> List[Dict[str, Any]]:
    """
    Retourne les lignes du panier avec leur produit résolu:
    [{"product_id": "...", "quantity": 2, "product": {...} | None}, ...]
    - Lignes sans product_id ou de quantité <= 0 ignorées.
    - InvalidCartItemError si une quantité n'est pas un entier (ex: "abc", 1.5).
    - product vaut None si le produit a été supprimé depuis l'ajout au panier.
    - Retourne [] si le panier est absent.
    """
    cart = repository.get_cart(user_id) or {}
    lines: List[Dict[str, Any]] = []
    for it in cart.get("items") or []:
        product_id = str(it.get("product_id") or it.get("product") or "").strip()
        if not product_id:
            continue
        try:
            quantity = _parse_quantity(it.get("quantity"))
        except ValueError:
            raise InvalidCartItemError(product_id)
        if quantity <= 0:
            continue
        lines.append({"product_id": product_id, "quantity": quantity})
    if not lines:
        return []

    products = products_repository.get_products_map({line["product_id"] for line in lines})
    for line in lines:
        line["product"] = products.get(line["product_id"])
    return lines
