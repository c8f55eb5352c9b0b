# catalog_admin/core.py
import locale
import math
from typing import Iterable, List, Optional, Sequence, Tuple

from unidecode import unidecode

from .models import CatalogStats, Product, SortKey, SortOrder, ViewResult

# Pure view logic: nothing in here touches the network or mutates its inputs.


def _title_key(product: Product) -> Tuple[str, str]:
    # accents fold onto their base letter first ("Éclair" files under e),
    # the accented form only breaks ties; both go through the active LC_COLLATE
    title = product.title.casefold()
    return locale.strxfrm(unidecode(title)), locale.strxfrm(title)


def _price_key(product: Product) -> float:
    return product.price


_SORT_KEYS = {
    SortKey.TITLE: _title_key,
    SortKey.PRICE: _price_key,
}


def filter_products(products: Iterable[Product], query: str) -> List[Product]:
    term = query.lower()
    if not term:
        return list(products)
    return [p for p in products if term in p.title.lower()]


def sort_products(products: Sequence[Product], sort_key: SortKey, sort_order: SortOrder) -> List[Product]:
    if sort_key is SortKey.NONE:
        return list(products)
    # list.sort is stable for reverse=True as well
    return sorted(products, key=_SORT_KEYS[sort_key], reverse=sort_order is SortOrder.DESC)


def compute_view(
    products: Sequence[Product],
    query: str,
    sort_key: SortKey,
    sort_order: SortOrder,
    page_index: int,
    page_size: int,
) -> ViewResult:
    """
    Filter by title, sort, then slice out one page.

    total_pages is never below 1, and page_index is clamped into
    [1, total_pages] before slicing. The caller stores the clamped index.
    """
    if page_size < 1:
        raise ValueError("page_size must be >= 1")

    items = sort_products(filter_products(products, query), sort_key, sort_order)
    total_count = len(items)
    total_pages = max(1, math.ceil(total_count / page_size))
    clamped = min(max(page_index, 1), total_pages)

    start = (clamped - 1) * page_size
    return ViewResult(
        page=items[start:start + page_size],
        items=items,
        total_count=total_count,
        total_pages=total_pages,
        clamped_page_index=clamped,
    )


def page_window(current: int, total: int, radius: int = 2) -> List[Optional[int]]:
    """
    Page links around `current`, with the first/last page pinned.
    None marks an ellipsis, e.g. page_window(6, 10) -> [1, None, 4, 5, 6, 7, 8, None, 10].
    """
    start = max(1, current - radius)
    end = min(total, current + radius)

    window: List[Optional[int]] = []
    if start > 1:
        window.append(1)
        if start > 2:
            window.append(None)
    window.extend(range(start, end + 1))
    if end < total:
        if end < total - 1:
            window.append(None)
        window.append(total)
    return window


def record_range(result: ViewResult, page_size: int) -> Tuple[int, int]:
    if result.total_count == 0:
        return 0, 0
    start = (result.clamped_page_index - 1) * page_size + 1
    end = min(result.clamped_page_index * page_size, result.total_count)
    return start, end


# ---------------------------
# Aggregate statistics
# ---------------------------
def compute_stats(products: Sequence[Product]) -> CatalogStats:
    categories = {p.category_name for p in products if p.category_name}
    if products:
        average = round(sum(p.price for p in products) / len(products), 2)
    else:
        # empty catalog reports 0.00 rather than dividing by zero
        average = 0.0
    return CatalogStats(
        total_count=len(products),
        category_count=len(categories),
        average_price=average,
    )
