from __future__ import annotations

import asyncio

from conftest import FakeDocument

from readx_viewer.events import PageChanged, ViewerErrorEvent
from readx_viewer.search import SearchSession


def test_cached_pages_match_before_background_phase_starts(make_controller) -> None:
    doc = FakeDocument(50, texts={30: "read the book", 40: "The end"})
    controller, events = make_controller(doc)
    snapshot: dict = {}

    async def _run() -> None:
        controller.open_document(b"%PDF", 1)
        await controller.settle()
        controller.surface(5).slot.cached_text = doc.text_of(5)
        controller.surface(30).slot.cached_text = doc.text_of(30)
        events.clear()

        task = controller.set_query("the")
        snapshot["match_pages"] = controller.match_pages
        snapshot["active_index"] = controller.active_index
        snapshot["current_page"] = controller.current_page
        snapshot["materialized"] = 30 in controller.render_window
        snapshot["searching"] = controller.searching
        await task

    asyncio.run(_run())

    assert snapshot == {
        "match_pages": [30],
        "active_index": 0,
        "current_page": 30,
        "materialized": True,
        "searching": True,
    }
    assert events[0] == PageChanged(30, 50)
    assert controller.match_pages == [30, 40]
    assert controller.active_index == 0
    assert controller.searching is False


def test_superseded_query_leaves_no_stale_matches(make_controller) -> None:
    doc = FakeDocument(40, texts={10: "alpha", 20: "beta", 30: "alpha again"})
    controller, _ = make_controller(doc)

    async def _run() -> None:
        controller.open_document(b"%PDF", 1)
        await controller.settle()
        first = controller.set_query("alpha")
        second = controller.set_query("beta")
        await asyncio.gather(first, second)

    asyncio.run(_run())

    assert controller.query == "beta"
    assert controller.match_pages == [20]
    assert controller.current_page == 20


def test_first_background_match_navigates_and_marks_boxes(make_controller) -> None:
    doc = FakeDocument(30, texts={12: "where the river bends", 25: "the sea"})
    controller, _ = make_controller(doc)

    async def _run() -> None:
        controller.open_document(b"%PDF", 1)
        await controller.settle()
        await controller.set_query("the")

    asyncio.run(_run())

    assert controller.match_pages == [12, 25]
    assert controller.current_page == 12
    marks = {b.text: b.match for b in controller.surface(12).word_boxes}
    assert marks == {"where": None, "the": "active", "river": None, "bends": None}


def test_stepping_matches_moves_active_highlight(make_controller) -> None:
    doc = FakeDocument(30, texts={12: "the river", 14: "the sea"})
    controller, _ = make_controller(doc)

    async def _run() -> None:
        controller.open_document(b"%PDF", 1)
        await controller.settle()
        await controller.set_query("the")
        assert controller.next_match() == 14
        assert controller.prev_match() == 12
        assert controller.prev_match() == 14

    asyncio.run(_run())

    assert controller.current_page == 14
    assert controller.active_index == 1
    assert controller.surface(14).word_boxes[0].match == "active"
    assert controller.surface(12).word_boxes[0].match == "other"


def test_closing_search_clears_matches_and_restores_chrome(make_controller) -> None:
    doc = FakeDocument(20, texts={3: "the cat"})
    controller, _ = make_controller(doc)

    async def _run() -> None:
        controller.open_document(b"%PDF", 1)
        await controller.settle()
        controller.open_search()
        await controller.set_query("the")
        controller.close_search()

    asyncio.run(_run())

    assert controller.match_pages == []
    assert controller.active_index == -1
    assert controller.chrome_visible is True
    assert all(b.match is None for b in controller.surface(3).word_boxes)


def test_closing_search_keeps_chrome_hidden_in_immersive_mode(make_controller) -> None:
    controller, _ = make_controller(FakeDocument(5))

    async def _run() -> None:
        controller.open_document(b"%PDF", 1)
        await controller.settle()
        controller.toggle_immersive()
        controller.open_search()
        assert controller.chrome_visible is True
        controller.close_search()

    asyncio.run(_run())

    assert controller.chrome_visible is False


def test_extraction_failure_excludes_only_that_page(make_controller) -> None:
    doc = FakeDocument(20, texts={9: "the one", 15: "the other"}, failing_text={12})
    controller, events = make_controller(doc)

    async def _run() -> None:
        controller.open_document(b"%PDF", 1)
        await controller.settle()
        await controller.set_query("the")

    asyncio.run(_run())

    assert controller.match_pages == [9, 15]
    errors = [e for e in events if isinstance(e, ViewerErrorEvent)]
    assert [(e.kind, e.page) for e in errors] == [("searchExtraction", 12)]


def test_blank_query_is_idle(make_controller) -> None:
    controller, _ = make_controller(FakeDocument(5))

    async def _run() -> None:
        controller.open_document(b"%PDF", 1)
        await controller.settle()
        assert controller.set_query("   ") is None

    asyncio.run(_run())

    assert controller.match_pages == []
    assert controller.active_index == -1


def test_merge_keeps_pages_ascending_unique_and_active_page_stable() -> None:
    session = SearchSession(query="x", generation=1)
    assert session.merge([30, 10]) is True
    session.active_index = 1

    assert session.merge([20, 10]) is False
    assert session.match_pages == [10, 20, 30]
    assert session.active_page == 30


def test_surrounding_whitespace_is_part_of_the_query(make_controller) -> None:
    doc = FakeDocument(10, texts={3: "the cat", 7: "see the dog"})
    controller, _ = make_controller(doc)

    async def _run() -> None:
        controller.open_document(b"%PDF", 1)
        await controller.settle()
        await controller.set_query(" the")

    asyncio.run(_run())

    assert controller.query == " the"
    assert controller.match_pages == [7]
