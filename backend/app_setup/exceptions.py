"""
Gestionnaires d'exceptions.
- HTTPException: body JSON standard {"detail": ...}.
- PaymentFlowError (checkout / paiement): code HTTP porté par l'erreur, body {"detail": message}.
"""
import logging
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from backend.payments.errors import PaymentFlowError

logger = logging.getLogger(__name__)

def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=getattr(exc, "headers", None))

    @app.exception_handler(PaymentFlowError)
    async def payment_flow_error_handler(request: Request, exc: PaymentFlowError):
        if exc.status_code >= 500:
            logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "error": type(exc).__name__})
