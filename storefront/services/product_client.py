# storefront/services/product_client.py
from dataclasses import dataclass
from decimal import Decimal

import requests
from requests import RequestException

from storefront.domain.errors import CatalogUnavailable, VariantNotFound
from storefront.domain.pricing import effective_price
from storefront.utils.retry import http_retry
from storefront.utils.settings import PRODUCT_SERVICE_URL
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class VariantInfo:
    id: str
    name: str
    price: Decimal
    sale_price: Decimal | None
    stock_level: int
    image_url: str | None = None

    @property
    def unit_price(self) -> Decimal:
        return effective_price(self.price, self.sale_price)


def _decimal(value) -> Decimal | None:
    if value is None or value == "":
        return None
    return Decimal(str(value))


class ProductClient:
    """Read-only access to product variants owned by the catalog service."""

    def __init__(self, base_url: str | None = None, timeout: int = 2):
        self.base_url = (base_url or PRODUCT_SERVICE_URL).rstrip("/")
        self.timeout = timeout

    @http_retry()
    def _get(self, url: str) -> requests.Response:
        logger.info(f"ProductClient GET {url}")
        return requests.get(url, timeout=self.timeout)

    def fetch_variant(self, variant_id: str) -> VariantInfo:
        url = f"{self.base_url}/variants/{variant_id}"
        try:
            resp = self._get(url)
        except RequestException as e:
            logger.error(f"Catalog unreachable for variant {variant_id}: {e}")
            raise CatalogUnavailable(f"Catalog unavailable: {e}") from e

        if resp.status_code == 404:
            raise VariantNotFound(variant_id)
        try:
            resp.raise_for_status()
        except RequestException as e:
            raise CatalogUnavailable(f"Catalog error: {e}") from e

        data = resp.json()
        return VariantInfo(
            id=str(data["id"]),
            name=data.get("name") or "Product",
            price=Decimal(str(data["price"])),
            sale_price=_decimal(data.get("sale_price")),
            stock_level=int(data.get("stock_level", 0)),
            image_url=data.get("image_url"),
        )
