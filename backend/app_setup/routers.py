"""
Registre central des routers.
- API: checkout, orders (consultation), payment (statut, IPN, pages de retour), pesapal (diagnostic admin)
- Health: health_router
"""
from fastapi import FastAPI
from backend.checkout import views as checkout_views
from backend.orders import views as orders_views
from backend.payments import views as payments_views
from backend.health.router import router as health_router

def register_routers(app: FastAPI) -> None:
    """
    Agrège tous les routers de l'application.
    - L'ordre n'a pas d'impact sauf conflits de chemins (évités par préfixes).
    """
    app.include_router(checkout_views.router)
    app.include_router(orders_views.router)
    app.include_router(payments_views.router)
    app.include_router(payments_views.pesapal_router)
    app.include_router(health_router)
