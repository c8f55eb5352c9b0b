# catalog_admin/display.py
from typing import List, Optional

from pydantic import BaseModel

from .core import page_window, record_range
from .models import Product, SortKey, SortOrder
from .viewmodel import ProductListViewModel

NO_IMAGE = "https://via.placeholder.com/80?text=No+Image"
NO_DESCRIPTION = "No description"


class ProductRow(BaseModel):
    id: str
    title: str
    price: str
    category: str
    image: str
    description: str


class DisplayModel(BaseModel):
    rows: List[ProductRow]
    sort_key: SortKey
    sort_order: SortOrder
    search_query: str
    result_count: Optional[int]
    page_index: int
    total_pages: int
    total_count: int
    record_start: int
    record_end: int
    page_links: List[Optional[int]]
    show_pagination: bool
    stats_total: str
    stats_categories: str
    stats_average_price: str
    error: Optional[str]
    last_updated: Optional[str]


def product_row(product: Product) -> ProductRow:
    return ProductRow(
        id=str(product.id),
        title=product.title,
        price=f"${product.price:.2f}",
        category=product.category_name or "N/A",
        image=product.first_image or NO_IMAGE,
        description=product.description or NO_DESCRIPTION,
    )


def project(vm: ProductListViewModel) -> DisplayModel:
    """Everything the renderer needs, as plain strings and numbers."""
    result = vm.view()
    state = vm.state
    start, end = record_range(result, state.page_size)
    stats = vm.stats()

    return DisplayModel(
        rows=[product_row(p) for p in result.page],
        sort_key=state.sort_key,
        sort_order=state.sort_order,
        search_query=state.search_query,
        result_count=result.total_count if state.search_query else None,
        page_index=result.clamped_page_index,
        total_pages=result.total_pages,
        total_count=result.total_count,
        record_start=start,
        record_end=end,
        page_links=page_window(result.clamped_page_index, result.total_pages),
        show_pagination=result.total_pages > 1,
        stats_total=str(stats.total_count),
        stats_categories=str(stats.category_count),
        stats_average_price=f"${stats.average_price:.2f}",
        error=vm.error,
        last_updated=vm.last_updated.strftime("%H:%M:%S") if vm.last_updated else None,
    )
