"""
Erreurs métier du flux checkout / paiement.
Chaque erreur porte son code HTTP; le rendu JSON est fait par
backend.app_setup.exceptions.register_exception_handlers.
"""
from typing import Optional


class PaymentFlowError(Exception):
    status_code = 500
    default_message = "Erreur de paiement"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class EmptyCartError(PaymentFlowError):
    status_code = 400
    default_message = "Cart is empty"


class ProductUnavailableError(PaymentFlowError):
    status_code = 409
    default_message = "A product in the cart is no longer available"

    def __init__(self, product_ids=None, message: Optional[str] = None):
        self.product_ids = list(product_ids or [])
        if message is None and self.product_ids:
            message = f"Products no longer available: {', '.join(self.product_ids)}"
        super().__init__(message)


class UpstreamAuthError(PaymentFlowError):
    status_code = 500
    default_message = "Failed to fetch Pesapal token"


class PaymentSessionError(PaymentFlowError):
    status_code = 500
    default_message = "Failed to create Pesapal payment session"


class TransactionStatusError(PaymentFlowError):
    status_code = 502
    default_message = "Failed to fetch Pesapal transaction status"


class MissingTrackingIdError(PaymentFlowError):
    status_code = 400
    default_message = "Missing OrderTrackingId"


class InvalidCartItemError(PaymentFlowError):
    status_code = 400
    default_message = "Cart contains an invalid item"

    def __init__(self, product_id=None, message: Optional[str] = None):
        self.product_id = product_id
        if message is None and product_id:
            message = f"Invalid quantity for product {product_id}"
        super().__init__(message)
