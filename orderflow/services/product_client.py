# orderflow/services/product_client.py
import requests

from orderflow.domain.errors import ProductNotFound
from orderflow.domain.snapshots import ProductInfo
from orderflow.utils.retry import http_retry, http_write_retry
from orderflow.utils.settings import PRODUCT_SERVICE_URL
from orderflow.utils.logging import get_logger

logger = get_logger(__name__)


class ProductClient:
    """
    Klient katalogu produktow (osobny serwis).
    Stan magazynowy jest licznikiem po stronie katalogu - tu wysylamy tylko delty.
    """

    def __init__(self, base_url: str | None = None, timeout: int = 2):
        self.base_url = (base_url or PRODUCT_SERVICE_URL).rstrip("/")
        self.timeout = timeout

    @http_retry()
    def _get(self, url: str) -> requests.Response:
        return requests.get(url, timeout=self.timeout)

    def fetch_product(self, product_id: int) -> ProductInfo:
        url = f"{self.base_url}/products/{product_id}"
        logger.info(f"ProductClient GET {url}")

        resp = self._get(url)
        if resp.status_code == 404:
            raise ProductNotFound(f"Product {product_id} is no longer available")
        resp.raise_for_status()
        return ProductInfo.from_payload(resp.json())

    @http_write_retry()
    def adjust_stock(self, product_id: int, size: str | None, delta: int) -> None:
        url = f"{self.base_url}/products/{product_id}/stock"
        logger.info(f"ProductClient POST {url} size={size} delta={delta}")

        resp = requests.post(url, json={"size": size, "delta": delta}, timeout=self.timeout)
        resp.raise_for_status()
