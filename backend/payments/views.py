import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse

from backend.utils.security import require_admin
from backend.utils.templates import templates
from backend.payments import service as payments_service
from backend.payments.pesapal_client import get_pesapal_client

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/payment", tags=["Payments API"])
pesapal_router = APIRouter(prefix="/api/pesapal", tags=["Pesapal"])

IPN_FIELDS = ("OrderTrackingId", "OrderMerchantReference", "OrderNotificationType")
FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")

# module backend.payments.views
@router.get("/transaction-status/{tracking_id}")
def transaction_status(tracking_id: str) -> Dict[str, Any]:
    """
    Polling du statut d'une transaction Pesapal.
    - Met à jour le paiement (et la commande si Completed/Failed)
    - Renvoie le payload brut du fournisseur
    """
    return payments_service.pull_status(tracking_id)

async def _ipn_params(request: Request) -> Dict[str, Optional[str]]:
    """Paramètres IPN: query string en GET, corps JSON ou formulaire en POST."""
    source: Dict[str, Any] = {}
    if request.method == "POST":
        ctype = request.headers.get("content-type", "")
        if ctype.startswith(FORM_CONTENT_TYPES):
            form_data = await request.form()
            source = dict(form_data)
        elif await request.body():
            try:
                body = await request.json()
            except ValueError:
                logger.warning("payments.ipn: unreadable POST body")
            else:
                source = body if isinstance(body, dict) else {}
    # En POST, certains envois portent aussi les paramètres en query string
    for key, value in request.query_params.items():
        source.setdefault(key, value)
    return {field: (str(source[field]) if source.get(field) is not None else None) for field in IPN_FIELDS}

@router.api_route("/ipn-listener", methods=["GET", "POST"], include_in_schema=False)
async def ipn_listener(request: Request) -> Dict[str, Any]:
    """
    IPN Pesapal (GET ou POST, charges équivalentes).
    - 400 si OrderTrackingId est absent
    - sinon accusé de réception 200 quel que soit le résultat interne
    """
    params = await _ipn_params(request)
    # Appels httpx / Supabase bloquants: hors de la boucle d'événements
    ack = await run_in_threadpool(
        payments_service.handle_notification,
        params["OrderTrackingId"],
        params["OrderMerchantReference"],
        params["OrderNotificationType"],
    )
    logger.info("payments.ipn acknowledged tracking_id=%s", ack["orderTrackingId"])
    return ack

def _landing_context(request: Request) -> Dict[str, Any]:
    return {
        "tracking_id": request.query_params.get("OrderTrackingId"),
        "merchant_reference": request.query_params.get("OrderMerchantReference"),
    }

@router.get("/callback", response_class=HTMLResponse, include_in_schema=False)
def payment_callback(request: Request):
    """Retour navigateur après la page de paiement hébergée."""
    return templates.TemplateResponse(request, "payment_callback.html", _landing_context(request))

@router.get("/cancel", response_class=HTMLResponse, include_in_schema=False)
def payment_cancel(request: Request):
    """Retour navigateur lorsque l'acheteur annule sur la page Pesapal."""
    return templates.TemplateResponse(request, "payment_cancel.html", _landing_context(request))

@pesapal_router.post("/auth")
def pesapal_auth(user: Dict[str, Any] = Depends(require_admin)) -> Dict[str, Any]:
    """
    Diagnostic admin: force l'obtention d'un jeton via le cache partagé.
    Erreur: 500 UpstreamAuthError si Pesapal refuse les identifiants.
    """
    cached = get_pesapal_client().token_cache.force_refresh()
    return {
        "token": cached.value,
        "expires_at": cached.expires_at.isoformat(),
        "message": "Token fetched successfully",
    }
