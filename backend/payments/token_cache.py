"""
Cache du jeton Bearer Pesapal.
- Un seul jeton par processus, partagé par checkout et réconciliation.
- Rafraîchi à l'expiration seulement; un échec de rafraîchissement ne touche pas au cache.
"""
import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict

from .errors import UpstreamAuthError

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CachedToken(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: str
    expires_at: datetime


class TokenCache:
    """
    Détient le jeton courant et sa date d'expiration.

    fetch: appelle Auth/RequestToken et retourne un CachedToken (lève UpstreamAuthError).
    clock: horloge injectable (tests).
    """

    def __init__(self, fetch: Callable[[], CachedToken], clock: Callable[[], datetime] = utcnow):
        self._fetch = fetch
        self._clock = clock
        self._lock = threading.Lock()
        self._cached: Optional[CachedToken] = None

    @property
    def current(self) -> Optional[CachedToken]:
        return self._cached

    def get_token(self) -> str:
        with self._lock:
            cached = self._cached
            if cached is not None and cached.expires_at > self._clock():
                return cached.value
            return self._refresh_locked().value

    def force_refresh(self) -> CachedToken:
        with self._lock:
            return self._refresh_locked()

    def _refresh_locked(self) -> CachedToken:
        try:
            fresh = self._fetch()
        except UpstreamAuthError:
            logger.exception("Pesapal token refresh failed")
            raise
        except Exception as e:
            logger.exception("Pesapal token refresh failed")
            raise UpstreamAuthError() from e
        # Remplacement atomique de la référence (jamais de mutation en place)
        self._cached = fresh
        logger.info("Pesapal token refreshed, expires_at=%s", fresh.expires_at.isoformat())
        return fresh
