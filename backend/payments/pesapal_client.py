"""
Adaptateur Pesapal v3: centralise les appels HTTP et la configuration du fournisseur.
- Auth/RequestToken: jeton Bearer (mis en cache via TokenCache)
- Transactions/SubmitOrderRequest: session de paiement hébergée
- Transactions/GetTransactionStatus: statut faisant autorité
"""
import logging
import re
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import httpx

from backend import config
from .errors import PaymentSessionError, TransactionStatusError, UpstreamAuthError
from .token_cache import CachedToken, TokenCache, utcnow

logger = logging.getLogger(__name__)

# module backend.payments.pesapal_client
COMPLETED_STATUS = "Completed"
FAILED_STATUS = "Failed"

_JSON_HEADERS = {"Accept": "application/json", "Content-Type": "application/json"}


def _provider_error(body: Dict[str, Any]) -> Optional[str]:
    """Pesapal répond souvent 200 avec un objet 'error' renseigné."""
    err = body.get("error")
    if not err:
        return None
    if isinstance(err, dict):
        return err.get("message") or err.get("code") or str(err)
    return str(err)


def _parse_expiry(body: Dict[str, Any], now: datetime) -> datetime:
    """
    Date d'expiration du jeton:
    - expires_in (secondes) si présent
    - sinon expiryDate (ISO 8601, 'Z' accepté)
    - sinon 5 minutes (durée de vie documentée d'un jeton Pesapal)
    """
    if body.get("expires_in") is not None:
        return now + timedelta(seconds=float(body["expires_in"]))
    expiry = body.get("expiryDate")
    if expiry:
        raw = str(expiry).replace("Z", "+00:00")
        # Pesapal renvoie jusqu'à 7 décimales; fromisoformat en accepte 6
        if "." in raw:
            head, _, tail = raw.partition(".")
            digits = re.match(r"\d*", tail).group(0)
            zone = tail[len(digits):]
            raw = f"{head}.{digits[:6]}{zone}"
        parsed = datetime.fromisoformat(raw)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=now.tzinfo)
        return parsed
    return now + timedelta(minutes=5)


class PesapalClient:
    """Client HTTP Pesapal; possède son TokenCache."""

    def __init__(
        self,
        *,
        base_url: str = config.PESAPAL_BASE_URL,
        consumer_key: str = config.PESAPAL_CONSUMER_KEY,
        consumer_secret: str = config.PESAPAL_CONSUMER_SECRET,
        timeout: float = config.PESAPAL_TIMEOUT_SECONDS,
        http: Optional[httpx.Client] = None,
        clock=utcnow,
    ):
        self.consumer_key = consumer_key
        self.consumer_secret = consumer_secret
        self._clock = clock
        self._http = http or httpx.Client(base_url=base_url, timeout=timeout, headers=_JSON_HEADERS)
        self.token_cache = TokenCache(self.request_token, clock=clock)

    def close(self) -> None:
        self._http.close()

    def _auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token_cache.get_token()}"}

    def request_token(self) -> CachedToken:
        """POST Auth/RequestToken -> CachedToken. Lève UpstreamAuthError."""
        if not self.consumer_key or not self.consumer_secret:
            raise UpstreamAuthError("PESAPAL_CONSUMER_KEY / PESAPAL_CONSUMER_SECRET manquants")
        try:
            resp = self._http.post(
                "/Auth/RequestToken",
                json={"consumer_key": self.consumer_key, "consumer_secret": self.consumer_secret},
            )
            resp.raise_for_status()
            body = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise UpstreamAuthError(f"Failed to fetch Pesapal token: {e}") from e

        err = _provider_error(body)
        token = body.get("token")
        if err or not token:
            raise UpstreamAuthError(f"Failed to fetch Pesapal token: {err or 'no token returned'}")
        return CachedToken(value=token, expires_at=_parse_expiry(body, self._clock()))

    def submit_order_request(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST Transactions/SubmitOrderRequest.
        Retour: {"order_tracking_id", "merchant_reference", "redirect_url", ...}
        Erreurs: UpstreamAuthError (jeton), PaymentSessionError (rejet, réseau, timeout).
        """
        headers = self._auth_headers()
        try:
            resp = self._http.post("/Transactions/SubmitOrderRequest", json=payload, headers=headers)
            resp.raise_for_status()
            body = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Pesapal SubmitOrderRequest failed id=%s: %s", payload.get("id"), e)
            raise PaymentSessionError(f"Failed to create Pesapal payment session: {e}") from e

        err = _provider_error(body)
        if err or not body.get("order_tracking_id") or not body.get("redirect_url"):
            logger.warning("Pesapal SubmitOrderRequest rejected id=%s error=%s", payload.get("id"), err)
            raise PaymentSessionError(f"Pesapal rejected the order request: {err or 'incomplete response'}")
        return body

    def get_transaction_status(self, order_tracking_id: str) -> Dict[str, Any]:
        """
        GET Transactions/GetTransactionStatus?orderTrackingId=...
        Retour: payload brut (payment_status_description, amount, ...).
        - TransactionStatusError si la réponse porte une erreur ou aucun statut:
          rien ne doit alors écraser le statut déjà enregistré.
        """
        headers = self._auth_headers()
        try:
            resp = self._http.get(
                "/Transactions/GetTransactionStatus",
                params={"orderTrackingId": order_tracking_id},
                headers=headers,
            )
            resp.raise_for_status()
            body = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise TransactionStatusError(f"Failed to fetch Pesapal transaction status: {e}") from e

        if not isinstance(body, dict):
            raise TransactionStatusError("Pesapal returned an unexpected transaction status payload")
        err = _provider_error(body)
        if err or not status_of(body).strip():
            logger.warning("Pesapal GetTransactionStatus rejected tracking_id=%s error=%s", order_tracking_id, err)
            raise TransactionStatusError(
                f"Pesapal returned no transaction status: {err or 'missing payment_status_description'}"
            )
        return body


_client: Optional[PesapalClient] = None


def get_pesapal_client() -> PesapalClient:
    """Instance partagée par le processus (un seul cache de jeton)."""
    global _client
    if _client is None:
        _client = PesapalClient()
    return _client


def status_of(payload: Dict[str, Any]) -> str:
    return str((payload or {}).get("payment_status_description") or "")
