from typing import Any, Dict, Optional
from .repository import get_user_from_access_token as _repo_get_user_from_token

def determine_role(metadata: Optional[Dict[str, Any]]) -> str:
    if str((metadata or {}).get("role", "")).lower() == "admin":
        return "admin"
    return "user"

def get_user_from_token(access_token: str) -> Dict[str, Any]:
    """Normalise l'utilisateur issu de supabase.auth.get_user(access_token):
    - Retourne {id, email, name, phone, role, token}
    - name: metadata.full_name (ou name); phone: metadata.phone sinon téléphone Auth
    - Ces champs alimentent l'adresse de facturation envoyée à Pesapal
    """
    raw = _repo_get_user_from_token(access_token)
    metadata = raw.get("user_metadata") or {}
    return {
        "id": raw.get("id"),
        "email": raw.get("email"),
        "name": metadata.get("full_name") or metadata.get("name") or "",
        "phone": metadata.get("phone") or raw.get("phone") or None,
        "role": determine_role(metadata),
        "token": access_token,
    }
