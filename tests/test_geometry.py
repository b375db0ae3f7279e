from __future__ import annotations

import pytest

from readx_viewer.geometry import GeometryMeasurer, page_text, render_scale
from readx_viewer.pdf_model import TextRun


def _mono(text: str, size: float) -> float:
    return len(text) * size * 0.5


def _run(text: str, x: float = 50.0, baseline: float = 100.0, size: float = 12.0, width=None) -> TextRun:
    if width is None:
        width = len(text) * size * 0.5
    return TextRun(text=text, transform=(size, 0.0, 0.0, size, x, baseline), width=width, height=size)


def test_words_are_placed_proportionally_within_their_run() -> None:
    boxes, text = GeometryMeasurer(_mono).measure([_run("hello big world")], scale=2.0)

    assert text == "hello big world"
    assert [b.text for b in boxes] == ["hello", "big", "world"]
    assert [b.x for b in boxes] == pytest.approx([100.0, 172.0, 220.0])
    assert [b.w for b in boxes] == pytest.approx([60.0, 36.0, 60.0])
    for box in boxes:
        assert box.y == pytest.approx(200.0 - 0.85 * 24.0)
        assert box.h == pytest.approx(24.0)


def test_embedded_font_width_rescales_measured_offsets() -> None:
    # The content stream says the run is twice as wide as the overlay font measures it
    boxes, _ = GeometryMeasurer(_mono).measure([_run("hello big world", width=180.0)], scale=2.0)

    assert boxes[0].w == pytest.approx(120.0)
    assert boxes[1].x == pytest.approx((50.0 + 72.0) * 2.0)
    assert boxes[2].x == pytest.approx((50.0 + 120.0) * 2.0)


def test_offsets_reference_the_original_run_string() -> None:
    boxes, text = GeometryMeasurer(_mono).measure([_run("a   b")], scale=1.0)

    assert [b.text for b in boxes] == ["a", "b"]
    # Four characters precede "b", whitespace included
    assert boxes[1].x == pytest.approx(50.0 + 4 * 6.0)
    assert text[boxes[1].offset:boxes[1].offset + 1] == "b"


def test_whitespace_run_adds_no_boxes_but_advances_text_offset() -> None:
    runs = [_run("   "), _run("word", x=80.0)]
    boxes, text = GeometryMeasurer(_mono).measure(runs, scale=1.0)

    assert [b.text for b in boxes] == ["word"]
    assert boxes[0].offset == 4
    assert text[boxes[0].offset:] == "word"
    assert text == page_text(runs)


def test_empty_page_has_no_boxes_and_empty_text() -> None:
    assert GeometryMeasurer(_mono).measure([], scale=3.0) == ([], "")


def test_zero_measured_width_falls_back_to_unscaled_metrics() -> None:
    measurer = GeometryMeasurer(lambda text, size: 0.0)
    boxes, _ = measurer.measure([_run("ghost")], scale=1.0)
    assert boxes[0].w == 0.0
    assert boxes[0].x == pytest.approx(50.0)


def test_measuring_twice_yields_identical_geometry() -> None:
    measurer = GeometryMeasurer(_mono)
    runs = [_run("the quick brown"), _run("fox jumps", baseline=130.0)]

    first, _ = measurer.measure(runs, scale=3.0)
    second, _ = measurer.measure(runs, scale=3.0)

    assert [b.geometry for b in first] == [b.geometry for b in second]


def test_render_scale_floors_device_pixel_ratio() -> None:
    assert render_scale(600.0, 300.0, 1.0) == pytest.approx(1.5)
    assert render_scale(600.0, 300.0, 2.0) == pytest.approx(1.5)
    assert render_scale(600.0, 300.0, 4.0) == pytest.approx(2.0)
