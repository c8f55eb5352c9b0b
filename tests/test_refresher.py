# tests/test_refresher.py
import asyncio

import pytest

from catalog_admin.models import Product
from catalog_admin.refresher import AutoRefresher
from catalog_admin.viewmodel import ProductListViewModel


class ScriptedClient:
    """Each list call waits on its own gate, so tests decide completion order."""

    def __init__(self):
        self.gates = []
        self.calls = 0

    async def list_products_async(self):
        index = self.calls
        self.calls += 1
        gate = asyncio.Event()
        self.gates.append(gate)
        await gate.wait()
        return [Product(id=index, title=f"batch {index}", price=1)]


def test_interval_must_be_positive():
    with pytest.raises(ValueError):
        AutoRefresher(ProductListViewModel(ScriptedClient()), interval=0)


def test_start_fetches_immediately_and_stop_cancels():
    async def scenario():
        client = ScriptedClient()
        refresher = AutoRefresher(ProductListViewModel(client), interval=60)
        refresher.start()
        await asyncio.sleep(0.01)
        assert refresher.running
        assert client.calls == 1

        refresher.stop()
        assert not refresher.running
        client.gates[0].set()
        await refresher.wait_idle()
        return refresher

    refresher = asyncio.run(scenario())
    assert refresher.view_model.products[0].title == "batch 0"


def test_hung_fetch_does_not_block_next_tick():
    async def scenario():
        client = ScriptedClient()
        refresher = AutoRefresher(ProductListViewModel(client), interval=0.02)
        refresher.start()
        await asyncio.sleep(0.09)
        refresher.stop()
        calls = client.calls
        for gate in client.gates:
            gate.set()
        await refresher.wait_idle()
        return calls

    # first fetch never completed while the timer kept firing
    assert asyncio.run(scenario()) >= 3


def test_overlapping_fetches_last_response_wins():
    async def scenario():
        client = ScriptedClient()
        vm = ProductListViewModel(client)
        refresher = AutoRefresher(vm, interval=60)
        refresher.trigger()
        refresher.trigger()
        await asyncio.sleep(0)

        # the second request answers first, the first one answers last
        client.gates[1].set()
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        client.gates[0].set()
        await refresher.wait_idle()
        return vm

    vm = asyncio.run(scenario())
    assert [p.title for p in vm.products] == ["batch 0"]


def test_start_twice_keeps_one_timer():
    async def scenario():
        client = ScriptedClient()
        refresher = AutoRefresher(ProductListViewModel(client), interval=60)
        refresher.start()
        refresher.start()
        await asyncio.sleep(0.01)
        refresher.stop()
        for gate in client.gates:
            gate.set()
        await refresher.wait_idle()
        return client.calls

    assert asyncio.run(scenario()) == 1
