"""Tests for the client-side image fallback cascade."""

import pytest

from app.imagestore.cascade import (
    DEFAULT_FINAL_PLACEHOLDER,
    DEFAULT_PROCESSING_PLACEHOLDER,
    ImageFallbackCascade,
    Strategy,
)
from app.imagestore.owner import ProductOwner

ORIGIN = "http://shop.test"


def run_to_end(cascade: ImageFallbackCascade) -> list[str]:
    seen = []
    while (src := cascade.on_error()) is not None:
        seen.append(src)
    return seen


def test_strategies_apply_in_order():
    cascade = ImageFallbackCascade("/uploads/stores/3/a.jpg", ORIGIN)

    assert run_to_end(cascade) == [
        "uploads/stores/3/a.jpg",
        "http://shop.test/uploads/stores/3/a.jpg",
        "/uploads/a.jpg",
        DEFAULT_FINAL_PLACEHOLDER,
    ]
    assert cascade.attempt_count == 4
    assert cascade.terminal
    assert cascade.tried == [
        Strategy.STRIP_LEADING_SLASH,
        Strategy.ORIGIN_ABSOLUTE,
        Strategy.CANONICAL_UPLOADS,
    ]


def test_blob_reference_goes_straight_to_processing_placeholder():
    cascade = ImageFallbackCascade("blob:http://shop.test/6f1c", ORIGIN)

    assert cascade.on_error() == DEFAULT_PROCESSING_PLACEHOLDER
    assert cascade.terminal
    assert cascade.attempt_count == 1
    assert cascade.on_error() is None


def test_owner_builds_canonical_path():
    cascade = ImageFallbackCascade("a.jpg", ORIGIN, owner=ProductOwner(3, 21))

    assert run_to_end(cascade) == [
        "http://shop.test/a.jpg",
        "/uploads/stores/3/products/21/a.jpg",
        DEFAULT_FINAL_PLACEHOLDER,
    ]


def test_absolute_source_skips_origin_strategy():
    cascade = ImageFallbackCascade("http://cdn.test/img/x.jpg?v=1", ORIGIN)

    assert run_to_end(cascade) == ["/uploads/x.jpg", DEFAULT_FINAL_PLACEHOLDER]


@pytest.mark.parametrize(
    "src",
    [
        "/uploads/stores/3/a.jpg",
        "uploads/a.jpg",
        "a.jpg",
        "http://cdn.test/a.jpg",
        "blob:http://shop.test/1",
        "",
        "/",
    ],
)
def test_cascade_is_bounded(src):
    cascade = ImageFallbackCascade(src, ORIGIN)

    attempts = 0
    while cascade.on_error() is not None:
        attempts += 1
        assert attempts <= 4

    assert cascade.terminal
    assert cascade.attempt_count <= 4


def test_sources_already_tried_are_not_repeated():
    cascade = ImageFallbackCascade("/uploads/x.jpg", ORIGIN)

    assert run_to_end(cascade) == [
        "uploads/x.jpg",
        "http://shop.test/uploads/x.jpg",
        DEFAULT_FINAL_PLACEHOLDER,
    ]
    assert Strategy.CANONICAL_UPLOADS not in cascade.tried
    assert cascade.sources.count("/uploads/x.jpg") == 1


def test_lower_attempt_cap_settles_early():
    cascade = ImageFallbackCascade("/uploads/a.jpg", ORIGIN, max_attempts=2)

    assert run_to_end(cascade) == ["uploads/a.jpg", DEFAULT_FINAL_PLACEHOLDER]


def test_reset_starts_over():
    cascade = ImageFallbackCascade("blob:http://shop.test/1", ORIGIN)
    cascade.on_error()

    cascade.reset("/uploads/b.jpg")

    assert not cascade.terminal
    assert cascade.attempt_count == 0
    assert cascade.current_src == "/uploads/b.jpg"
    assert cascade.on_error() == "uploads/b.jpg"
