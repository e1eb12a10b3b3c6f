import os

# Avant l'import de l'app: pas de Redis pendant les tests
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

import json
from datetime import datetime, timezone
from typing import Any, Dict, Generator, List

import httpx
import pytest
from fastapi.testclient import TestClient

from backend.app import app as fastapi_app
from backend.orders.models import Order, OrderStatus
from backend.payments import pesapal_client as pesapal_module
from backend.payments.models import PaymentRecord, PENDING
from backend.payments.pesapal_client import PesapalClient
from backend.utils.security import require_user, require_admin

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "/tests/unit/" in nodeid or nodeid.startswith("tests/unit/") or nodeid.startswith("unit/"):
            item.add_marker(pytest.mark.unit)
        elif "/tests/integration/" in nodeid or nodeid.startswith("tests/integration/") or nodeid.startswith("integration/"):
            item.add_marker(pytest.mark.integration)

TEST_USER: Dict[str, Any] = {
    "id": "test-user",
    "email": "test@example.com",
    "name": "Test User",
    "phone": None,
    "role": "user",
    "token": "fake-token",
}

@pytest.fixture(scope="session")
def app():
    return fastapi_app

@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c

# Simuler un utilisateur authentifié pour les endpoints protégés
@pytest.fixture(autouse=True)
def _override_require_user(app):
    app.dependency_overrides[require_user] = lambda: dict(TEST_USER)
    try:
        yield
    finally:
        app.dependency_overrides.pop(require_user, None)

@pytest.fixture
def admin_client(app, client):
    app.dependency_overrides[require_admin] = lambda: {**TEST_USER, "id": "admin-user", "role": "admin"}
    yield client
    app.dependency_overrides.pop(require_admin, None)


class InMemoryStore:
    """Remplace les repositories Supabase par des dicts (produits, paniers, commandes, paiements)."""

    def __init__(self):
        self.products: Dict[str, Dict[str, Any]] = {}
        self.carts: Dict[str, Dict[str, Any]] = {}
        self.orders: Dict[str, Dict[str, Any]] = {}
        self.payments: Dict[str, Dict[str, Any]] = {}
        self._seq = 0

    def _next_id(self, prefix: str) -> str:
        self._seq += 1
        return f"{prefix}-{self._seq}"

    # --- seeds ---
    def add_product(self, product_id: str, price) -> None:
        self.products[product_id] = {"id": product_id, "title": f"Produit {product_id}", "price": price}

    def set_cart(self, user_id: str, items: List[Dict[str, Any]]) -> None:
        self.carts[user_id] = {"user_id": user_id, "items": list(items)}

    # --- products ---
    def fetch_products_by_ids(self, ids):
        return [dict(self.products[i]) for i in ids if i in self.products]

    # --- cart ---
    def get_cart(self, user_id):
        cart = self.carts.get(user_id)
        return {"user_id": user_id, "items": list(cart["items"])} if cart else None

    def clear_cart(self, user_id):
        if user_id in self.carts:
            self.carts[user_id]["items"] = []

    # --- orders ---
    def create_order(self, *, user_id, items, total_amount):
        order = Order(
            id=self._next_id("order"),
            user_id=user_id,
            items=items,
            total_amount=total_amount,
            created_at=datetime.now(timezone.utc),
        )
        self.orders[order.id] = order.model_dump(mode="json")
        return order

    def get_order(self, order_id):
        row = self.orders.get(order_id)
        return Order.model_validate(row) if row else None

    def link_payment(self, order_id, payment_id):
        row = self.orders.get(order_id)
        if not row or row.get("payment_id"):
            return False
        row["payment_id"] = payment_id
        return True

    def transition_status(self, order_id, to_status, from_status=OrderStatus.PENDING):
        row = self.orders.get(order_id)
        if not row or row["status"] != OrderStatus(from_status).value:
            return False
        row["status"] = OrderStatus(to_status).value
        return True

    # --- payments ---
    def create_payment(self, *, user_id, order_id, tracking_id, merchant_reference, amount):
        payment = PaymentRecord(
            id=self._next_id("payment"),
            user_id=user_id,
            order_id=order_id,
            tracking_id=tracking_id,
            merchant_reference=merchant_reference,
            amount=amount,
            status=PENDING,
        )
        self.payments[payment.id] = payment.model_dump(mode="json")
        return payment

    def get_by_tracking_id(self, tracking_id):
        for row in self.payments.values():
            if row["tracking_id"] == tracking_id:
                return PaymentRecord.model_validate(row)
        return None

    def update_status_by_tracking_id(self, tracking_id, status):
        updated = None
        for row in self.payments.values():
            if row["tracking_id"] == tracking_id:
                row["status"] = status
                updated = PaymentRecord.model_validate(row)
        return updated

    def order_status(self, order_id) -> str:
        return self.orders[order_id]["status"]


@pytest.fixture
def store(monkeypatch) -> InMemoryStore:
    s = InMemoryStore()
    monkeypatch.setattr("backend.products.repository.fetch_products_by_ids", s.fetch_products_by_ids)
    monkeypatch.setattr("backend.cart.repository.get_cart", s.get_cart)
    monkeypatch.setattr("backend.cart.repository.clear_cart", s.clear_cart)
    for name in ("create_order", "get_order", "link_payment", "transition_status"):
        monkeypatch.setattr(f"backend.orders.repository.{name}", getattr(s, name))
    for name in ("create_payment", "update_status_by_tracking_id"):
        monkeypatch.setattr(f"backend.payments.repository.{name}", getattr(s, name))
    return s


class FakePesapal:
    """
    Fournisseur Pesapal simulé derrière httpx.MockTransport.
    - token_calls / submit_calls / status_calls: requêtes reçues
    - statuses: {tracking_id: payment_status_description}
    - fail_auth / fail_submit / fail_status: force une réponse en erreur
    - status_error: GetTransactionStatus répond 200 avec un objet "error"
    """

    def __init__(self):
        self.token_calls = 0
        self.submit_calls: List[Dict[str, Any]] = []
        self.status_calls: List[str] = []
        self.statuses: Dict[str, str] = {}
        self.fail_auth = False
        self.fail_submit = False
        self.fail_status = False
        self.status_error = False
        self.expires_in = 300
        self._tracking_seq = 0

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.endswith("/Auth/RequestToken"):
            self.token_calls += 1
            if self.fail_auth:
                return httpx.Response(401, json={"error": {"code": "invalid_consumer_key_or_secret_provided"}})
            return httpx.Response(200, json={"token": f"tok-{self.token_calls}", "expires_in": self.expires_in, "error": None, "status": "200"})
        if path.endswith("/Transactions/SubmitOrderRequest"):
            body = json.loads(request.content)
            self.submit_calls.append({"body": body, "authorization": request.headers.get("Authorization")})
            if self.fail_submit:
                return httpx.Response(500, json={"error": {"code": "internal", "message": "boom"}})
            self._tracking_seq += 1
            tracking_id = f"trk-{self._tracking_seq}"
            self.statuses.setdefault(tracking_id, "Pending")
            return httpx.Response(200, json={
                "order_tracking_id": tracking_id,
                "merchant_reference": body.get("id"),
                "redirect_url": f"https://pay.pesapal.test/iframe?OrderTrackingId={tracking_id}",
                "error": None,
                "status": "200",
            })
        if path.endswith("/Transactions/GetTransactionStatus"):
            tracking_id = request.url.params.get("orderTrackingId")
            self.status_calls.append(tracking_id)
            if self.fail_status:
                return httpx.Response(503, text="unavailable")
            if self.status_error:
                return httpx.Response(200, json={"error": {"error_type": "api_error", "code": "payment_details_not_found"}, "status": "500"})
            return httpx.Response(200, json={
                "payment_status_description": self.statuses.get(tracking_id, "Invalid"),
                "order_tracking_id": tracking_id,
                "status_code": 1,
                "status": "200",
            })
        return httpx.Response(404, json={"error": {"code": "not_found"}})


@pytest.fixture
def fake_pesapal() -> FakePesapal:
    return FakePesapal()

@pytest.fixture
def pesapal(monkeypatch, fake_pesapal) -> PesapalClient:
    """Vrai PesapalClient branché sur FakePesapal, installé comme client partagé."""
    http = httpx.Client(base_url="https://pesapal.test/v3/api", transport=httpx.MockTransport(fake_pesapal.handler))
    c = PesapalClient(consumer_key="ck", consumer_secret="cs", http=http)
    monkeypatch.setattr(pesapal_module, "_client", c)
    yield c
    http.close()
