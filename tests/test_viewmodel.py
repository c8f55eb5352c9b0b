# tests/test_viewmodel.py
import asyncio
from datetime import datetime

import httpx
import pytest

from catalog_admin.errors import EmptyExportError, NetworkError, ValidationError
from catalog_admin.models import Category, Product, ProductForm, SortKey, SortOrder
from catalog_admin.sdk import CatalogClient
from catalog_admin.viewmodel import (
    ErrorDismissed,
    PageRequested,
    PageSizeChanged,
    PageStepped,
    ProductListViewModel,
    SearchChanged,
    SearchCleared,
    SortToggled,
)
from stub_api import FAIL_NEXT, PRODUCTS


class RecordingClient:
    """Counts API calls; used to prove validation short-circuits."""

    def __init__(self):
        self.calls = []

    async def create_product_async(self, payload):
        self.calls.append(("create", payload))
        raise AssertionError("network must not be reached")

    async def update_product_async(self, product_id, payload):
        self.calls.append(("update", product_id, payload))
        raise AssertionError("network must not be reached")


def _many(n):
    return [Product(id=i, title=f"Item {i}", price=i) for i in range(1, n + 1)]


def test_refresh_replaces_catalog(vm):
    assert asyncio.run(vm.refresh()) is True
    assert [p.id for p in vm.products] == [1, 2, 3]
    assert vm.last_updated is not None

    del PRODUCTS[3]
    asyncio.run(vm.refresh())
    assert [p.id for p in vm.products] == [1, 2]


def test_refresh_failure_sets_banner_and_keeps_state(vm):
    asyncio.run(vm.refresh())
    before = list(vm.products)

    FAIL_NEXT["list"] = 500
    assert asyncio.run(vm.refresh()) is False
    assert vm.products == before
    assert "500" in vm.error

    vm.dispatch(ErrorDismissed())
    assert vm.error is None


def test_search_resets_page_and_filters(vm):
    vm.products = _many(25)
    vm.dispatch(PageRequested(page=3))
    assert vm.state.page_index == 3

    result = vm.dispatch(SearchChanged(query="  item 1 "))
    assert vm.state.search_query == "item 1"
    assert vm.state.page_index == 1
    # Item 1, Item 10..19
    assert result.total_count == 11

    vm.dispatch(SearchCleared())
    assert vm.state.search_query == ""
    assert vm.view().total_count == 25


def test_sort_toggle_flips_on_repeat(vm):
    vm.products = _many(3)
    vm.dispatch(SortToggled(key=SortKey.PRICE))
    assert (vm.state.sort_key, vm.state.sort_order) == (SortKey.PRICE, SortOrder.ASC)

    result = vm.dispatch(SortToggled(key=SortKey.PRICE))
    assert vm.state.sort_order is SortOrder.DESC
    assert [p.id for p in result.page] == [3, 2, 1]

    vm.dispatch(SortToggled(key=SortKey.TITLE))
    assert (vm.state.sort_key, vm.state.sort_order) == (SortKey.TITLE, SortOrder.ASC)

    vm.dispatch(SortToggled(key=SortKey.NONE))
    assert vm.state.sort_key is SortKey.NONE


def test_sort_change_resets_page(vm):
    vm.products = _many(30)
    vm.dispatch(PageRequested(page=2))
    vm.dispatch(SortToggled(key=SortKey.TITLE))
    assert vm.state.page_index == 1


def test_page_size_change(vm):
    vm.products = _many(30)
    vm.dispatch(PageRequested(page=3))
    result = vm.dispatch(PageSizeChanged(size=5))
    assert vm.state.page_index == 1
    assert result.total_pages == 6

    with pytest.raises(ValueError):
        vm.dispatch(PageSizeChanged(size=7))


def test_out_of_range_page_request_is_ignored(vm):
    vm.products = _many(15)
    vm.dispatch(PageRequested(page=2))
    vm.dispatch(PageRequested(page=5))
    assert vm.state.page_index == 2
    vm.dispatch(PageStepped(delta=1))
    assert vm.state.page_index == 2
    vm.dispatch(PageStepped(delta=-1))
    assert vm.state.page_index == 1
    vm.dispatch(PageStepped(delta=-1))
    assert vm.state.page_index == 1


def test_shrinking_catalog_clamps_page(vm):
    vm.products = _many(30)
    vm.dispatch(PageRequested(page=3))
    vm.products = _many(12)
    result = vm.view()
    assert result.clamped_page_index == 2
    assert vm.state.page_index == 2
    assert [p.id for p in result.page] == [11, 12]


def test_create_prepends_and_fills_category(vm):
    asyncio.run(vm.refresh())
    form = ProductForm(title="  Desk Lamp ", price="12.50", description=" warm ", category_id=1)
    created = asyncio.run(vm.create_product(form))

    assert vm.products[0] == created
    assert created.title == "Desk Lamp"
    assert created.price == 12.5
    assert created.description == "warm"
    # stub echoes no category object; it is filled from the fixed set
    assert created.category == Category(id=1, name="Electronics")
    assert created.images == ["https://via.placeholder.com/400?text=Desk%20Lamp"]


@pytest.mark.parametrize("form, field", [
    (ProductForm(title="   ", price="10", category_id=1), "title"),
    (ProductForm(title="Lamp", price="abc", category_id=1), "price"),
    (ProductForm(title="Lamp", price="-1", category_id=1), "price"),
    (ProductForm(title="Lamp", price="inf", category_id=1), "price"),
    (ProductForm(title="Lamp", price="nan", category_id=1), "price"),
    (ProductForm(title="Lamp", price="3"), "category"),
    (ProductForm(title="Lamp", price="3", category_id=42), "category"),
])
def test_create_validation_short_circuits(form, field):
    client = RecordingClient()
    vm = ProductListViewModel(client)
    with pytest.raises(ValidationError) as exc:
        asyncio.run(vm.create_product(form))
    assert exc.value.field == field
    assert client.calls == []
    assert vm.products == []


def test_create_failure_sets_banner(vm):
    asyncio.run(vm.refresh())
    FAIL_NEXT["create"] = 400
    with pytest.raises(NetworkError):
        asyncio.run(vm.create_product(ProductForm(title="Lamp", price="3", category_id=1)))
    assert len(vm.products) == 3
    assert "400" in vm.error


def test_update_replaces_in_place(vm):
    asyncio.run(vm.refresh())
    updated = asyncio.run(vm.update_product(1, ProductForm(title="Stool", price="15", description="")))

    assert [p.id for p in vm.products] == [1, 2, 3]
    assert vm.products[0] == updated
    assert updated.title == "Stool"
    assert updated.price == 15
    assert updated.description == ""
    # id, images and category are untouched by the client
    assert updated.images == ["https://img.example/chair.png"]
    assert updated.category.name == "Furniture"


def test_update_validation_short_circuits():
    client = RecordingClient()
    vm = ProductListViewModel(client)
    vm.products = _many(1)
    with pytest.raises(ValidationError) as exc:
        asyncio.run(vm.update_product(1, ProductForm(title="", price="1")))
    assert exc.value.field == "title"
    assert client.calls == []


def test_update_unknown_id(vm):
    asyncio.run(vm.refresh())
    with pytest.raises(KeyError):
        asyncio.run(vm.update_product(99, ProductForm(title="x", price="1")))


def test_update_failure_leaves_product(vm):
    asyncio.run(vm.refresh())
    FAIL_NEXT["update"] = 500
    with pytest.raises(NetworkError):
        asyncio.run(vm.update_product(1, ProductForm(title="Stool", price="15")))
    assert vm.products[0].title == "Chair"
    assert "500" in vm.error


def test_update_applies_to_refreshed_catalog():
    class SlowUpdateClient:
        def __init__(self):
            self.release = None

        async def update_product_async(self, product_id, payload):
            await self.release.wait()
            return Product(id=product_id, title=payload.title, price=payload.price, description=payload.description)

    async def scenario():
        client = SlowUpdateClient()
        client.release = asyncio.Event()
        vm = ProductListViewModel(client)
        vm.products = [Product(id=1, title="Chair", price=5), Product(id=2, title="Desk", price=9)]

        pending = asyncio.create_task(vm.update_product(2, ProductForm(title="Desk XL", price="11")))
        await asyncio.sleep(0)
        # a refresh lands while the PUT is in flight
        vm.products = [Product(id=2, title="Desk", price=9), Product(id=3, title="Lamp", price=2)]
        client.release.set()
        await pending
        return vm

    vm = asyncio.run(scenario())
    assert [(p.id, p.title) for p in vm.products] == [(2, "Desk XL"), (3, "Lamp")]


def test_update_dropped_when_product_disappeared():
    class SlowUpdateClient:
        def __init__(self):
            self.release = None

        async def update_product_async(self, product_id, payload):
            await self.release.wait()
            return Product(id=product_id, title=payload.title, price=payload.price)

    async def scenario():
        client = SlowUpdateClient()
        client.release = asyncio.Event()
        vm = ProductListViewModel(client)
        vm.products = [Product(id=1, title="Chair", price=5)]
        pending = asyncio.create_task(vm.update_product(1, ProductForm(title="Stool", price="1")))
        await asyncio.sleep(0)
        vm.products = [Product(id=3, title="Lamp", price=2)]
        client.release.set()
        return vm, await pending

    vm, result = asyncio.run(scenario())
    assert result is None
    assert [p.id for p in vm.products] == [3]


def test_listeners_notified(vm):
    seen = []
    vm.subscribe(lambda model: seen.append(len(model.products)))
    asyncio.run(vm.refresh())
    asyncio.run(vm.create_product(ProductForm(title="Lamp", price="3", category_id=4)))
    assert seen == [3, 4]


def test_export_uses_filtered_sorted_view(vm, tmp_path):
    asyncio.run(vm.refresh())
    vm.dispatch(SearchChanged(query="chair"))
    vm.dispatch(SortToggled(key=SortKey.PRICE))
    path = vm.export(now=datetime(2025, 1, 2, 3, 4))

    assert path == tmp_path / "products_2025-01-02_03-04.csv"
    lines = path.read_text(encoding="utf-8").split("\n")
    assert [line.split(",")[0] for line in lines[1:]] == ["2", "1"]


def test_export_with_no_visible_rows(vm):
    asyncio.run(vm.refresh())
    vm.dispatch(SearchChanged(query="no such product"))
    with pytest.raises(EmptyExportError):
        vm.export()


def test_page_size_must_be_a_choice():
    with pytest.raises(ValueError):
        ProductListViewModel(RecordingClient(), page_size=3)


def test_refresh_with_html_body_sets_banner():
    def respond(request):
        return httpx.Response(200, content=b"<html>maintenance</html>", headers={"content-type": "text/html"})

    vm = ProductListViewModel(CatalogClient(base_url="http://catalog.test", transport=httpx.MockTransport(respond)))
    vm.products = [Product(id=1, title="Chair", price=5)]
    assert asyncio.run(vm.refresh()) is False
    assert vm.error.startswith("Failed to load products")
    assert [p.id for p in vm.products] == [1]
