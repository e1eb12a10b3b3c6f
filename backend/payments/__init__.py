"""
Module 'payments' (feature-first): point d'entrée public.
Réunit client Pesapal, cache de jeton, repository BD et réconciliation des statuts.
"""

from .errors import (
    PaymentFlowError,
    EmptyCartError,
    InvalidCartItemError,
    ProductUnavailableError,
    UpstreamAuthError,
    PaymentSessionError,
    TransactionStatusError,
    MissingTrackingIdError,
)
from .token_cache import TokenCache, CachedToken
from .pesapal_client import PesapalClient, get_pesapal_client, COMPLETED_STATUS, FAILED_STATUS
from .service import pull_status, handle_notification, apply_provider_status

__all__ = [
    # errors
    "PaymentFlowError",
    "EmptyCartError",
    "InvalidCartItemError",
    "ProductUnavailableError",
    "UpstreamAuthError",
    "PaymentSessionError",
    "TransactionStatusError",
    "MissingTrackingIdError",
    # pesapal
    "TokenCache",
    "CachedToken",
    "PesapalClient",
    "get_pesapal_client",
    "COMPLETED_STATUS",
    "FAILED_STATUS",
    # services
    "pull_status",
    "handle_notification",
    "apply_provider_status",
]
