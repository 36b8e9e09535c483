from __future__ import annotations

from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.v1 import payments_route
from conftest import CHANNEL_TOKEN, METHOD_CODE, FakeCheckoutProvider
from core.payments.manager import PaymentManager
from security.auth import verify_any_token
from security.principal import AuthPrincipal


def _principal(*, role: str = "customer", user_id: str = "user-1") -> AuthPrincipal:
    return AuthPrincipal(
        user_id=user_id,
        role=role,  # type: ignore[arg-type]
        access_token_id="access-1",
    )


def _build_app(store, options, *, principal: AuthPrincipal, provider: FakeCheckoutProvider | None = None) -> FastAPI:
    app = FastAPI()
    app.include_router(payments_route.router, prefix="/v1")
    app.dependency_overrides[verify_any_token] = lambda: principal
    app.state.payment_manager = PaymentManager(
        store=store,
        options=options,
        provider_factory=(provider or FakeCheckoutProvider()).factory,
        default_channel_token=CHANNEL_TOKEN,
    )
    return app


def test_create_payment_intent_returns_session(make_store, make_order, options):
    store = make_store(make_order())
    client = TestClient(_build_app(store, options, principal=_principal()))

    response = client.post("/v1/payments/intents", json={"paymentMethodCode": METHOD_CODE})

    assert response.status_code == 200
    payload = response.json()
    assert payload["success"] is True
    assert payload["data"] == {
        "__typename": "PaymentIntent",
        "sessionData": "Ab02b4c0!BQABAgA",
        "transactionId": "CS1234",
    }


def test_create_payment_intent_renders_typed_error(make_store, make_order, options):
    store = make_store(make_order(total=0))
    provider = FakeCheckoutProvider()
    client = TestClient(_build_app(store, options, principal=_principal(), provider=provider))

    response = client.post("/v1/payments/intents", json={})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["__typename"] == "PaymentIntentError"
    assert data["errorCode"] == "INVALID_ORDER_TOTAL"
    assert provider.requests == []


def test_create_payment_intent_rejects_unknown_channel_header(make_store, make_order, options):
    store = make_store(make_order())
    client = TestClient(_build_app(store, options, principal=_principal()))

    response = client.post(
        "/v1/payments/intents",
        json={"paymentMethodCode": METHOD_CODE},
        headers={"X-Channel-Token": "unknown-channel"},
    )

    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "CHANNEL_NOT_FOUND"
    assert "get_active_order" not in store.calls


def test_create_payment_intent_only_sees_callers_order(make_store, make_order, options):
    store = make_store(make_order())
    client = TestClient(_build_app(store, options, principal=_principal(user_id="user-2")))

    response = client.post("/v1/payments/intents", json={"paymentMethodCode": METHOD_CODE})

    assert response.json()["data"]["errorCode"] == "NO_ACTIVE_ORDER"
    assert store.order("order-1").custom_fields.adyen_payment_method_code is None


def test_create_payment_intent_requires_bearer_token(make_store, options):
    app = _build_app(make_store(), options, principal=_principal())
    app.dependency_overrides.clear()
    client = TestClient(app)

    response = client.post("/v1/payments/intents", json={})

    assert response.status_code in {401, 403}
