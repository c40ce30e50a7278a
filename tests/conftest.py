import os

os.environ.setdefault("PAYMENT_GATEWAY", "fake")
os.environ.setdefault("APP_BASE_URL", "http://shop.test")

from decimal import Decimal
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from storefront.data.database import db_session, init_db
from storefront.domain.errors import VariantNotFound
from storefront.gateway import reset_gateway, set_gateway
from storefront.gateway.fake_adapter import FakeGateway
from storefront.services.product_client import VariantInfo


class FakeCatalog:
    def __init__(self) -> None:
        self.variants: dict[str, VariantInfo] = {}

    def add(
        self,
        variant_id: str,
        price: str,
        stock: int = 10,
        sale_price: str | None = None,
        name: str | None = None,
        image_url: str | None = None,
    ) -> VariantInfo:
        variant = VariantInfo(
            id=variant_id,
            name=name or variant_id,
            price=Decimal(price),
            sale_price=Decimal(sale_price) if sale_price else None,
            stock_level=stock,
            image_url=image_url,
        )
        self.variants[variant_id] = variant
        return variant

    def fetch_variant(self, variant_id: str) -> VariantInfo:
        if variant_id not in self.variants:
            raise VariantNotFound(variant_id)
        return self.variants[variant_id]


class RecordingNotifier:
    def __init__(self) -> None:
        self.sent: list[tuple] = []

    def send_order_paid(self, order_id: int, user_id: str | None, guest_token: str | None) -> None:
        self.sent.append((order_id, user_id, guest_token))


@pytest.fixture
def database_url(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> str:
    url = f"sqlite+pysqlite:///{tmp_path / 'storefront_test.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    monkeypatch.setenv("DB_AUTO_CREATE", "true")
    init_db()
    return url


@pytest.fixture
def db(database_url: str):
    session = db_session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def catalog() -> FakeCatalog:
    catalog = FakeCatalog()
    catalog.add("tee-black-m", "90.00", stock=5, name="Tee (black, M)", image_url="/static/tee.png")
    catalog.add("cap-red", "25.00", stock=3, sale_price="19.99", name="Cap (red)")
    catalog.add("sock-3pk", "12.50", stock=100, name="Socks 3-pack", image_url="https://cdn.test/socks.jpg")
    return catalog


@pytest.fixture
def gateway():
    gateway = FakeGateway(webhook_secret="whsec_test")
    set_gateway(gateway)
    yield gateway
    reset_gateway()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def client(database_url: str, catalog: FakeCatalog, gateway: FakeGateway, notifier: RecordingNotifier):
    from storefront.api import deps
    from storefront.main import app

    app.dependency_overrides[deps.get_product_client] = lambda: catalog
    app.dependency_overrides[deps.get_payment_gateway] = lambda: gateway
    app.dependency_overrides[deps.get_notification_service] = lambda: notifier
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
