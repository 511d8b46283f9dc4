"""Tests for canonical path building and parsing."""

import pytest

from app.imagestore.owner import ProductOwner, StoreOwner
from app.imagestore.paths import (
    InvalidFilenameError,
    build_path,
    build_thumbnail_path,
    extract_filename,
    fallback_candidates,
    is_unresolvable_reference,
    parse_owner_from_path,
    parse_owner_from_thumbnail_path,
    relative_from_url,
)


def test_build_path_for_store_and_product():
    assert build_path(StoreOwner(3), "front.jpg") == "stores/3/front.jpg"
    assert build_path(ProductOwner(3, 21), "loaf.jpg") == "stores/3/products/21/loaf.jpg"


def test_build_thumbnail_path():
    assert build_thumbnail_path(StoreOwner(3), "front.jpg") == "stores/3/thumbnails/front.jpg"
    assert (
        build_thumbnail_path(ProductOwner(3, 21), "loaf.jpg")
        == "stores/3/products/21/thumbnails/loaf.jpg"
    )


@pytest.mark.parametrize("filename", ["", "../x.jpg", "a/b.jpg", "a\\b.jpg", "..", "x\x00.jpg"])
def test_build_path_rejects_unsafe_filenames(filename):
    with pytest.raises(InvalidFilenameError):
        build_path(StoreOwner(3), filename)


def test_parse_owner_inverts_build_path():
    for owner in (StoreOwner(3), ProductOwner(3, 21)):
        assert parse_owner_from_path(build_path(owner, "a.png")) == owner


@pytest.mark.parametrize(
    "path",
    [
        "a.png",
        "originals/a.png",
        "stores/x/a.png",
        "stores/3/products/a.png",
        "stores/3/products/21/extra/a.png",
        "stores/3/thumbnails/a.png",
        "stores//a.png",
        "shops/3/a.png",
    ],
)
def test_parse_owner_rejects_non_canonical_paths(path):
    assert parse_owner_from_path(path) is None


def test_parse_owner_from_thumbnail_path():
    assert parse_owner_from_thumbnail_path("stores/3/thumbnails/a.png") == StoreOwner(3)
    assert parse_owner_from_thumbnail_path("stores/3/products/21/thumbnails/a.png") == ProductOwner(3, 21)
    assert parse_owner_from_thumbnail_path("stores/3/a.png") is None


def test_fallback_candidates_are_bounded_and_ordered():
    assert fallback_candidates(StoreOwner(3), "a.png") == [
        "a.png",
        "originals/a.png",
        "thumbnails/a.png",
    ]
    assert fallback_candidates(ProductOwner(3, 21), "a.png") == [
        "a.png",
        "originals/a.png",
        "thumbnails/a.png",
        "stores/3/a.png",
    ]


def test_extract_filename_from_legacy_urls():
    assert extract_filename("/uploads/stores/3/a.png") == "a.png"
    assert extract_filename("https://cdn.example.com/uploads/a.png?v=2") == "a.png"
    assert extract_filename("a.png") == "a.png"
    assert extract_filename("blob:http://localhost/123") == "blob:http://localhost/123"
    assert extract_filename(None) is None
    assert extract_filename("   ") is None


def test_relative_from_url():
    assert relative_from_url("/uploads/stores/3/a.png") == "stores/3/a.png"
    assert relative_from_url("/public/uploads/originals/a.png") == "originals/a.png"
    assert relative_from_url("http://host/uploads/a.png?x=1") == "a.png"
    assert relative_from_url("/uploads/../../etc/passwd") is None
    assert relative_from_url("blob:http://localhost/123") is None


def test_unresolvable_references():
    assert is_unresolvable_reference(None)
    assert is_unresolvable_reference("blob:http://localhost/123")
    assert is_unresolvable_reference("data:image/png;base64,AAAA")
    assert is_unresolvable_reference("../a.png")
    assert not is_unresolvable_reference("a.png")
