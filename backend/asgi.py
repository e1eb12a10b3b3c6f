"""
ASGI entrypoint: expose `app` pour les process managers / déploiements.

- En production, un process manager (ex: gunicorn -k uvicorn.workers.UvicornWorker) importe
  `backend.asgi:app`. Un seul worker partage un cache de jeton Pesapal; chaque worker
  supplémentaire obtient le sien.
- Toute la configuration FastAPI (routers, middlewares, exceptions) est centralisée
  dans backend.app_setup.factory; ce fichier ne fait qu'exposer l'instance `app`.
"""

from backend.app import app

if __name__ == "__main__":
    import os
    import uvicorn
    uvicorn.run(
        "backend.asgi:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=True,
    )
