# catalog_admin/viewmodel.py
import logging
import math
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union
from urllib.parse import quote

from pydantic import BaseModel

from .core import compute_stats, compute_view
from .errors import NetworkError, ValidationError
from .export import write_export
from .models import (
    CATEGORIES,
    PLACEHOLDER_IMAGE,
    CatalogStats,
    Category,
    Product,
    ProductCreateIn,
    ProductForm,
    ProductUpdateIn,
    SortKey,
    SortOrder,
    ViewResult,
    ViewState,
    category_name,
)
from .sdk import CatalogClient

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY_ID = 1


# ---------------------------
# Commands (one per UI trigger)
# ---------------------------
class SearchChanged(BaseModel):
    query: str


class SearchCleared(BaseModel):
    pass


class SortToggled(BaseModel):
    key: SortKey


class PageSizeChanged(BaseModel):
    size: int


class PageRequested(BaseModel):
    page: int


class PageStepped(BaseModel):
    delta: int


class ErrorDismissed(BaseModel):
    pass


Command = Union[
    SearchChanged, SearchCleared, SortToggled, PageSizeChanged,
    PageRequested, PageStepped, ErrorDismissed,
]


# ---------------------------
# Field validation
# ---------------------------
def validate_title(raw: str) -> str:
    title = (raw or "").strip()
    if not title:
        raise ValidationError("title", "Title must not be empty")
    return title


def validate_price(raw: Union[str, float, int, None]) -> float:
    if isinstance(raw, str):
        raw = raw.strip()
    try:
        price = float(raw)
    except (TypeError, ValueError):
        raise ValidationError("price", "Price must be a non-negative number")
    if not math.isfinite(price) or price < 0:
        raise ValidationError("price", "Price must be a non-negative number")
    return price


def validate_category(category_id: Optional[int]) -> int:
    if category_id not in CATEGORIES:
        raise ValidationError("category", "Please select a category")
    return category_id


def placeholder_image(title: str) -> str:
    return PLACEHOLDER_IMAGE + quote(title, safe="-_.!~*'()")


class ProductListViewModel:
    """
    Owns the fetched catalog and the current ViewState.

    Every UI trigger comes in as a command via dispatch(); network work
    (refresh/create/update) is async and only touches self.products once the
    response is in. Nothing here is locked: all calls happen on one event loop.
    """

    def __init__(
        self,
        client: CatalogClient,
        page_size: int = 10,
        page_size_choices: Sequence[int] = (5, 10, 20, 50),
        export_dir: str = ".",
    ):
        if page_size not in page_size_choices:
            raise ValueError(f"page_size {page_size} is not one of {list(page_size_choices)}")
        self.client = client
        self.page_size_choices = list(page_size_choices)
        self.export_dir = export_dir
        self.products: List[Product] = []
        self.state = ViewState(page_size=page_size)
        self.last_updated: Optional[datetime] = None
        self.error: Optional[str] = None
        self._listeners: List[Callable[["ProductListViewModel"], None]] = []

    # ---------------------------
    # Derived view
    # ---------------------------
    def view(self) -> ViewResult:
        s = self.state
        result = compute_view(self.products, s.search_query, s.sort_key, s.sort_order, s.page_index, s.page_size)
        if result.clamped_page_index != s.page_index:
            self._set_state(page_index=result.clamped_page_index)
        return result

    def displayed_products(self) -> List[Product]:
        return self.view().items

    def stats(self) -> CatalogStats:
        return compute_stats(self.products)

    def get_product(self, product_id: int) -> Product:
        index = self._index_of(product_id)
        if index is None:
            raise KeyError(product_id)
        return self.products[index]

    def subscribe(self, callback: Callable[["ProductListViewModel"], None]) -> None:
        self._listeners.append(callback)

    # ---------------------------
    # Commands
    # ---------------------------
    def dispatch(self, command: Command) -> ViewResult:
        s = self.state
        if isinstance(command, SearchChanged):
            self._set_state(search_query=command.query.strip(), page_index=1)

        elif isinstance(command, SearchCleared):
            self._set_state(search_query="", page_index=1)

        elif isinstance(command, SortToggled):
            if command.key is SortKey.NONE:
                self._set_state(sort_key=SortKey.NONE, sort_order=SortOrder.ASC, page_index=1)
            elif command.key is s.sort_key:
                self._set_state(sort_order=s.sort_order.flipped(), page_index=1)
            else:
                self._set_state(sort_key=command.key, sort_order=SortOrder.ASC, page_index=1)

        elif isinstance(command, PageSizeChanged):
            if command.size not in self.page_size_choices:
                raise ValueError(f"page size must be one of {self.page_size_choices}")
            self._set_state(page_size=command.size, page_index=1)

        elif isinstance(command, (PageRequested, PageStepped)):
            page = command.page if isinstance(command, PageRequested) else s.page_index + command.delta
            # out-of-range navigation is ignored, not clamped
            if 1 <= page <= self.view().total_pages:
                self._set_state(page_index=page)

        elif isinstance(command, ErrorDismissed):
            self.error = None

        else:
            raise TypeError(f"unknown command: {command!r}")

        return self.view()

    # ---------------------------
    # Network-backed operations
    # ---------------------------
    async def refresh(self) -> bool:
        """Replace the whole catalog with a fresh GET. Failures set the banner and return False."""
        try:
            products = await self.client.list_products_async()
        except NetworkError as e:
            self.error = f"Failed to load products: {e.message}"
            logger.warning("Product refresh failed: %s", e.message)
            return False

        self.products = products
        self.last_updated = datetime.now()
        self.view()
        logger.debug("Loaded %d products", len(products))
        self._notify()
        return True

    async def create_product(self, form: ProductForm) -> Product:
        title = validate_title(form.title)
        price = validate_price(form.price)
        category_id = validate_category(form.category_id)
        description = (form.description or "").strip()
        image = placeholder_image(title)

        payload = ProductCreateIn(
            title=title, price=price, description=description,
            categoryId=category_id, images=[image],
        )
        try:
            created = await self.client.create_product_async(payload)
        except NetworkError as e:
            self.error = f"Failed to create product: {e.message}"
            logger.warning("Create product failed: %s", e.message)
            raise

        fill = {}
        if created.category is None:
            fill["category"] = Category(id=category_id, name=category_name(category_id))
        if not created.images:
            fill["images"] = [image]
        if fill:
            created = created.model_copy(update=fill)

        self.products.insert(0, created)
        logger.info("Created product %s (%s)", created.id, created.title)
        self._notify()
        return created

    async def update_product(self, product_id: int, form: ProductForm) -> Optional[Product]:
        """
        PUT new title/price/description for an existing product.

        The response is applied to whichever product carries the id when it
        arrives, so an update that lands after a refresh still sticks. If a
        refresh dropped the id in the meantime the result is discarded and
        None is returned.
        """
        title = validate_title(form.title)
        price = validate_price(form.price)
        description = (form.description or "").strip()
        current = self.get_product(product_id)

        payload = ProductUpdateIn(
            title=title, price=price, description=description,
            categoryId=current.category.id if current.category else DEFAULT_CATEGORY_ID,
        )
        try:
            updated = await self.client.update_product_async(product_id, payload)
        except NetworkError as e:
            self.error = f"Failed to update product: {e.message}"
            logger.warning("Update of product %s failed: %s", product_id, e.message)
            raise

        index = self._index_of(product_id)
        if index is None:
            logger.warning("Product %s left the catalog before its update returned; dropping it", product_id)
            return None

        merged = self.products[index].model_copy(update={
            "title": updated.title,
            "price": updated.price,
            "description": updated.description if updated.description is not None else description,
        })
        self.products[index] = merged
        logger.info("Updated product %s", product_id)
        self._notify()
        return merged

    def export(self, now: Optional[datetime] = None) -> Path:
        return write_export(self.displayed_products(), self.export_dir, now)

    # ---------------------------
    # Internals
    # ---------------------------
    def _set_state(self, **changes) -> None:
        self.state = self.state.model_copy(update=changes)

    def _index_of(self, product_id: int) -> Optional[int]:
        for i, p in enumerate(self.products):
            if p.id == product_id:
                return i
        return None

    def _notify(self) -> None:
        for callback in self._listeners:
            callback(self)
