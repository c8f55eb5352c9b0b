#!/usr/bin/env python
import asyncio
from datetime import datetime

from catalog_admin.config import get_settings
from catalog_admin.errors import EmptyExportError, NetworkError
from catalog_admin.export import export_csv, export_filename
from catalog_admin.models import ProductForm, SortKey
from catalog_admin.sdk import CatalogClient
from catalog_admin.viewmodel import PageRequested, ProductListViewModel, SearchChanged, SortToggled


async def main():
    settings = get_settings()
    c = CatalogClient(base_url=settings.api_base_url, timeout=settings.request_timeout)
    vm = ProductListViewModel(c, page_size=settings.page_size, page_size_choices=settings.page_size_choices)

    # -----------------------------
    # Load catalog
    # -----------------------------
    print(f"Loading products from {settings.api_base_url} ...")
    if not await vm.refresh():
        print(vm.error)
        return
    stats = vm.stats()
    print(f"{stats.total_count} products, {stats.category_count} categories, avg ${stats.average_price:.2f}")

    # -----------------------------
    # Search + sort + paginate
    # -----------------------------
    print("\nSearching for 'shirt', cheapest first...")
    vm.dispatch(SearchChanged(query="shirt"))
    result = vm.dispatch(SortToggled(key=SortKey.PRICE))
    print(f"{result.total_count} matches over {result.total_pages} page(s)")
    for p in result.page:
        print(f"  #{p.id:<5} ${p.price:>8.2f}  {p.title}")

    result = vm.dispatch(PageRequested(page=2))
    print(f"Page {result.clamped_page_index}: {[p.id for p in result.page]}")

    # -----------------------------
    # Create product
    # -----------------------------
    print("\nCreating a product...")
    try:
        created = await vm.create_product(ProductForm(
            title=f"Demo product {datetime.now():%H%M%S}", price="19.90",
            description="Created by demo.py", category_id=4,
        ))
        print(created.model_dump())
    except NetworkError as e:
        print(f"Create failed: {e}")

    # -----------------------------
    # CSV preview
    # -----------------------------
    print(f"\nCSV preview ({export_filename()}):")
    try:
        print("\n".join(export_csv(vm.displayed_products()).split("\n")[:4]))
    except EmptyExportError as e:
        print(e)


if __name__ == "__main__":
    asyncio.run(main())
