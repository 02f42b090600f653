"""Tests for PageRegistry."""
from __future__ import annotations

import random
import threading

import pytest

from conftest import FakeDriver
from pagepilot.browser.registry import PageRegistry
from pagepilot.errors import (
    DriverError,
    LastPageError,
    NoPagesError,
    NotRunningError,
    PageNotFoundError,
)


@pytest.fixture
def registry(driver: FakeDriver) -> PageRegistry:
    driver.connected = True
    reg = PageRegistry(driver)
    reg.activate()
    return reg


class TestCreate:
    """Tests for page creation."""

    def test_first_page_becomes_current(self, registry: PageRegistry) -> None:
        page_id = registry.create("https://example.com")
        assert registry.current() == page_id
        assert registry.list() == [page_id]

    def test_second_page_does_not_steal_current(self, registry: PageRegistry) -> None:
        first = registry.create("https://example.com")
        second = registry.create("https://example.org")
        assert registry.current() == first
        assert registry.list() == [first, second]

    def test_url_is_scheme_normalized(self, registry: PageRegistry) -> None:
        page_id = registry.create("example.com")
        page = registry.get(page_id)
        assert page is not None
        assert page.url == "https://example.com"
        assert page.title == "Title of https://example.com"

    def test_driver_failure_leaves_registry_unchanged(
        self, registry: PageRegistry, driver: FakeDriver
    ) -> None:
        existing = registry.create("https://example.com")
        driver.fail_urls.add("https://broken.invalid")

        with pytest.raises(DriverError):
            registry.create("https://broken.invalid")

        assert registry.list() == [existing]
        assert registry.current() == existing

    def test_ids_are_never_reused(self, registry: PageRegistry) -> None:
        first = registry.create("https://a.example")
        second = registry.create("https://b.example")
        registry.close(second)
        third = registry.create("https://c.example")
        assert len({first, second, third}) == 3

    def test_create_when_not_running(self, driver: FakeDriver) -> None:
        reg = PageRegistry(driver)
        with pytest.raises(NotRunningError):
            reg.create("https://example.com")
        assert driver.tabs == {}

    def test_stop_during_open_releases_tab(self, registry: PageRegistry, driver: FakeDriver) -> None:
        driver.open_delay = registry.deactivate

        with pytest.raises(NotRunningError):
            registry.create("https://example.com")

        assert driver.tabs == {}
        assert len(driver.closed) == 1


class TestLookup:
    """Tests for get, list and current."""

    def test_get_unknown_returns_none(self, registry: PageRegistry) -> None:
        assert registry.get("page_404") is None

    def test_get_returns_copy(self, registry: PageRegistry) -> None:
        page_id = registry.create("https://example.com")
        page = registry.get(page_id)
        assert page is not None
        page.url = "https://mutated.example"
        assert registry.get(page_id).url == "https://example.com"

    def test_empty_registry(self, registry: PageRegistry) -> None:
        assert registry.list() == []
        assert registry.current() == ""

    def test_list_after_deactivate_raises(self, registry: PageRegistry) -> None:
        registry.create("https://example.com")
        registry.deactivate()
        with pytest.raises(NotRunningError):
            registry.list()
        with pytest.raises(NotRunningError):
            registry.current()


class TestSwitchCurrent:
    """Tests for switching the current page."""

    def test_switch_sets_current_and_focuses(self, registry: PageRegistry, driver: FakeDriver) -> None:
        registry.create("https://a.example")
        second = registry.create("https://b.example")

        registry.switch_current(second)

        assert registry.current() == second
        assert driver.focused == [registry.get(second).handle]

    def test_switch_unknown_raises(self, registry: PageRegistry) -> None:
        first = registry.create("https://a.example")
        with pytest.raises(PageNotFoundError):
            registry.switch_current("page_404")
        assert registry.current() == first


class TestClose:
    """Tests for closing pages and re-electing the current page."""

    def test_close_last_page_is_refused(self, registry: PageRegistry, driver: FakeDriver) -> None:
        page_id = registry.create("https://example.com")

        with pytest.raises(LastPageError):
            registry.close(page_id)

        assert registry.list() == [page_id]
        assert driver.closed == []

    def test_close_unknown_raises(self, registry: PageRegistry) -> None:
        registry.create("https://example.com")
        with pytest.raises(PageNotFoundError):
            registry.close("page_404")

    def test_close_non_current_keeps_current(self, registry: PageRegistry) -> None:
        first = registry.create("https://a.example")
        second = registry.create("https://b.example")
        registry.close(second)
        assert registry.current() == first

    def test_close_current_elects_most_recent(self, registry: PageRegistry) -> None:
        first = registry.create("https://a.example")
        second = registry.create("https://b.example")
        third = registry.create("https://c.example")

        registry.close(first)
        assert registry.current() == third

        registry.close(third)
        assert registry.current() == second

    def test_close_releases_driver_tab(self, registry: PageRegistry, driver: FakeDriver) -> None:
        registry.create("https://a.example")
        second = registry.create("https://b.example")
        handle = registry.get(second).handle

        registry.close(second)

        assert handle in driver.closed
        assert registry.get(second) is None

    def test_current_always_valid(self, registry: PageRegistry) -> None:
        rng = random.Random(7)
        registry.create("https://seed.example")
        for i in range(200):
            ids = registry.list()
            if len(ids) > 1 and rng.random() < 0.5:
                registry.close(rng.choice(ids))
            else:
                registry.create(f"https://{i}.example")
            current = registry.current()
            assert current == "" or current in registry.list()


class TestResolve:
    """Tests for resolving the page an operation addresses."""

    def test_empty_id_with_no_pages(self, registry: PageRegistry) -> None:
        with pytest.raises(NoPagesError):
            registry.resolve("")

    def test_empty_id_resolves_current(self, registry: PageRegistry) -> None:
        registry.create("https://a.example")
        second = registry.create("https://b.example")
        registry.switch_current(second)
        assert registry.resolve("").id == second

    def test_unknown_id(self, registry: PageRegistry) -> None:
        registry.create("https://a.example")
        with pytest.raises(PageNotFoundError, match="page_404"):
            registry.resolve("page_404")

    def test_resolve_updates_last_active(self, registry: PageRegistry) -> None:
        page_id = registry.create("https://a.example")
        before = registry.get(page_id).last_active
        assert registry.resolve(page_id).last_active >= before


class TestConcurrency:
    """Tests for concurrent registry mutation."""

    def test_concurrent_creates_yield_distinct_ids(self, registry: PageRegistry) -> None:
        num_threads = 16
        per_thread = 10
        created: list[str] = []
        created_lock = threading.Lock()

        def create_pages(worker: int) -> None:
            for i in range(per_thread):
                page_id = registry.create(f"https://{worker}-{i}.example")
                with created_lock:
                    created.append(page_id)

        threads = [threading.Thread(target=create_pages, args=(n,)) for n in range(num_threads)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(created) == num_threads * per_thread
        assert len(set(created)) == len(created)
        assert set(registry.list()) == set(created)
        assert registry.current() in created

    def test_close_racing_list_never_dangles(self, registry: PageRegistry) -> None:
        for i in range(50):
            registry.create(f"https://{i}.example")
        errors: list[Exception] = []
        stop = threading.Event()

        def reader() -> None:
            while not stop.is_set():
                try:
                    ids = registry.list()
                    assert len(ids) == len(set(ids))
                    assert registry.current() != ""
                    for page in registry.pages():
                        assert page.handle is not None
                except Exception as e:
                    errors.append(e)
                    return

        def closer() -> None:
            for page_id in registry.list()[:-1]:
                registry.close(page_id)

        reader_thread = threading.Thread(target=reader)
        reader_thread.start()
        closer()
        stop.set()
        reader_thread.join()

        assert errors == []
        assert len(registry.list()) == 1
        assert registry.current() == registry.list()[0]
