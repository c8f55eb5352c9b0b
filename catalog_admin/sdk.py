# catalog_admin/sdk.py
import logging
from typing import Any, Callable, Dict, List, Optional, TypeVar

import httpx
import requests
from pydantic import TypeAdapter

from .errors import NetworkError
from .models import Product, ProductCreateIn, ProductUpdateIn

logger = logging.getLogger(__name__)

T = TypeVar("T")

_product_list = TypeAdapter(List[Product])


def _parse_product_list(data: Any) -> List[Product]:
    return _product_list.validate_python(data)


def _parse_product(data: Any) -> Product:
    return Product.model_validate(data)


def _decode(r: Any, parse: Callable[[Any], T]) -> T:
    """
    Turn a requests/httpx response into models.

    Non-2xx statuses (redirects included), bodies that are not JSON and
    records the models reject all come out as NetworkError.
    """
    try:
        r.raise_for_status()
    except (requests.HTTPError, httpx.HTTPStatusError) as e:
        raise NetworkError(r.status_code, f"HTTP error! status: {r.status_code} {r.text}".rstrip()) from e
    # requests.raise_for_status lets 1xx/3xx through
    if not 200 <= r.status_code < 300:
        raise NetworkError(r.status_code, f"HTTP error! status: {r.status_code}")
    try:
        return parse(r.json())
    except ValueError as e:
        # json.JSONDecodeError and pydantic.ValidationError are both ValueErrors
        logger.debug("Undecodable response body: %r", r.text[:200])
        raise NetworkError(r.status_code, f"Invalid response from API (status {r.status_code}): {e}") from e


class CatalogClient:
    """
    Client for the catalog API: GET /products, PUT /products/{id}, POST /products.

    Sync methods go through a requests.Session; the *_async variants open an
    httpx.AsyncClient per call so they can run inside the admin event loop.
    Any non-success status, malformed body or transport failure raises NetworkError.
    """

    def __init__(
        self,
        base_url: str = "https://api.escuelajs.co/api/v1",
        timeout: Optional[float] = None,
        session: Any = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()
        self._transport = transport

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    # ---------------------------
    # Sync (requests)
    # ---------------------------
    def _request(self, method: str, path: str, parse: Callable[[Any], T], json: Optional[Dict[str, Any]] = None) -> T:
        kwargs: Dict[str, Any] = {}
        if json is not None:
            kwargs["json"] = json
        if self.timeout is not None:
            kwargs["timeout"] = self.timeout
        try:
            r = self.session.request(method, self._url(path), **kwargs)
        except requests.RequestException as e:
            raise NetworkError(None, str(e)) from e
        return _decode(r, parse)

    def list_products(self) -> List[Product]:
        return self._request("GET", "/products", _parse_product_list)

    def update_product(self, product_id: int, payload: ProductUpdateIn) -> Product:
        return self._request("PUT", f"/products/{product_id}", _parse_product, json=payload.model_dump())

    def create_product(self, payload: ProductCreateIn) -> Product:
        return self._request("POST", "/products", _parse_product, json=payload.model_dump())

    # ---------------------------
    # Async (httpx)
    # ---------------------------
    def _async_client(self) -> httpx.AsyncClient:
        kwargs: Dict[str, Any] = {}
        if self.timeout is not None:
            kwargs["timeout"] = self.timeout
        if self._transport is not None:
            kwargs["transport"] = self._transport
        return httpx.AsyncClient(**kwargs)

    async def _request_async(
        self, method: str, path: str, parse: Callable[[Any], T], json: Optional[Dict[str, Any]] = None
    ) -> T:
        try:
            async with self._async_client() as client:
                r = await client.request(method, self._url(path), json=json)
        except httpx.HTTPError as e:
            raise NetworkError(None, str(e) or e.__class__.__name__) from e
        return _decode(r, parse)

    async def list_products_async(self) -> List[Product]:
        return await self._request_async("GET", "/products", _parse_product_list)

    async def update_product_async(self, product_id: int, payload: ProductUpdateIn) -> Product:
        return await self._request_async("PUT", f"/products/{product_id}", _parse_product, json=payload.model_dump())

    async def create_product_async(self, payload: ProductCreateIn) -> Product:
        return await self._request_async("POST", "/products", _parse_product, json=payload.model_dump())


if __name__ == "__main__":
    import argparse

    from rich import print

    from .config import get_settings

    parser = argparse.ArgumentParser(description="Catalog API client")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("list-products", help="List all products")

    up = subparsers.add_parser("update-product", help="Update title/price/description of a product")
    up.add_argument("--product-id", type=int, required=True)
    up.add_argument("--title", required=True)
    up.add_argument("--price", type=float, required=True)
    up.add_argument("--description", default="")
    up.add_argument("--category-id", type=int, default=1)

    cp = subparsers.add_parser("create-product", help="Create a new product")
    cp.add_argument("--title", required=True)
    cp.add_argument("--price", type=float, required=True)
    cp.add_argument("--description", default="")
    cp.add_argument("--category-id", type=int, required=True)
    cp.add_argument("--image", action="append", default=[])

    args = parser.parse_args()
    settings = get_settings()
    c = CatalogClient(base_url=settings.api_base_url, timeout=settings.request_timeout)

    if args.command == "list-products":
        print([p.model_dump() for p in c.list_products()])
    elif args.command == "update-product":
        print(c.update_product(args.product_id, ProductUpdateIn(
            title=args.title, price=args.price, description=args.description, categoryId=args.category_id
        )).model_dump())
    elif args.command == "create-product":
        print(c.create_product(ProductCreateIn(
            title=args.title, price=args.price, description=args.description,
            categoryId=args.category_id, images=args.image
        )).model_dump())
