"""
Configuration centrale du backend.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise et expose les secrets/URLs (Supabase, Pesapal), sécurité cookies, CORS/hosts
- Fournit les URLs de retour navigateur et de notification pour le checkout Pesapal
"""
from pathlib import Path
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=True)

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

# Supabase: URL et clés (anon/service)
# - SUPABASE_URL peut parfois être sans schéma: on préfixe en https:// si nécessaire
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or "")
SUPABASE_ANON = _clean_env(os.getenv("SUPABASE_ANON_KEY") or os.getenv("SUPABASE_KEY") or "")
SUPABASE_SERVICE_KEY = _clean_env(os.getenv("SUPABASE_SERVICE_KEY") or "")

if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
if SUPABASE_URL.endswith("/"):
    SUPABASE_URL = SUPABASE_URL.rstrip("/")

# Cookies / hôtes
COOKIE_SECURE = (os.getenv("COOKIE_SECURE", "false").lower() == "true")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h.strip()]

BASE_URL = _clean_env(os.getenv("BASE_URL") or "http://localhost:8000")

# Pesapal: identifiants marchand et identifiant IPN enregistré
PESAPAL_BASE_URL = _clean_env(os.getenv("PESAPAL_BASE_URL") or "https://pay.pesapal.com/v3/api").rstrip("/")
PESAPAL_CONSUMER_KEY = _clean_env(os.getenv("PESAPAL_CONSUMER_KEY") or "")
PESAPAL_CONSUMER_SECRET = _clean_env(os.getenv("PESAPAL_CONSUMER_SECRET") or "")
PESAPAL_IPN_ID = _clean_env(os.getenv("PESAPAL_IPN_ID") or "")
PESAPAL_TIMEOUT_SECONDS = float(os.getenv("PESAPAL_TIMEOUT_SECONDS", "15"))

# Retours navigateur après la page de paiement hébergée
PESAPAL_CALLBACK_URL = _clean_env(os.getenv("PESAPAL_CALLBACK_URL") or f"{BASE_URL}/api/payment/callback")
PESAPAL_CANCEL_URL = _clean_env(os.getenv("PESAPAL_CANCEL_URL") or f"{BASE_URL}/api/payment/cancel")

# Valeurs transmises telles quelles au fournisseur
PESAPAL_CURRENCY = _clean_env(os.getenv("PESAPAL_CURRENCY") or "KES")
PESAPAL_COUNTRY_CODE = _clean_env(os.getenv("PESAPAL_COUNTRY_CODE") or "KE")
DEFAULT_PHONE_NUMBER = _clean_env(os.getenv("DEFAULT_PHONE_NUMBER") or "0700000000")
CHECKOUT_DESCRIPTION = os.getenv("CHECKOUT_DESCRIPTION", "E-commerce checkout")
