"""
Sondes de santé: Supabase (tables du flux checkout) et Pesapal (configuration, état du cache).
Les sondes ne lèvent jamais: elles décrivent l'état observé.
"""
from typing import Any, Dict
from urllib.parse import urlparse

from backend import config
import backend.infra.supabase_client as supabase_client
from backend.payments.pesapal_client import get_pesapal_client
from backend.payments.token_cache import utcnow

TABLES = ("products", "carts", "orders", "payments")

def _check_table(client, name: str) -> Dict[str, Any]:
    try:
        res = client.table(name).select("*").limit(1).execute()
        return {"ok": True, "rows": len(res.data or [])}
    except Exception as e:
        return {"ok": False, "error": str(e)}

def health_supabase_info() -> Dict[str, Any]:
    parsed = urlparse(config.SUPABASE_URL) if config.SUPABASE_URL else None
    info: Dict[str, Any] = {
        "supabase_url": config.SUPABASE_URL,
        "hostname": parsed.hostname if parsed else None,
        "connect_ok": False,
        "error": None,
        "tables": {},
    }
    try:
        client = supabase_client.get_service_supabase()
        for t in TABLES:
            info["tables"][t] = _check_table(client, t)
        info["connect_ok"] = True
    except Exception as e:
        info["error"] = str(e)
    return info

def health_pesapal_info() -> Dict[str, Any]:
    """N'expose jamais le jeton lui-même."""
    cached = get_pesapal_client().token_cache.current
    return {
        "base_url": config.PESAPAL_BASE_URL,
        "credentials_configured": bool(config.PESAPAL_CONSUMER_KEY and config.PESAPAL_CONSUMER_SECRET),
        "ipn_id_configured": bool(config.PESAPAL_IPN_ID),
        "token_cached": cached is not None,
        "token_valid": bool(cached and cached.expires_at > utcnow()),
        "token_expires_at": cached.expires_at.isoformat() if cached else None,
    }
