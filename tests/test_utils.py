from datetime import date

from app.utils import (
    build_image_url,
    build_meta_id,
    parse_meta_id,
    parse_release_date,
    release_year,
)


def test_parse_release_date():
    assert parse_release_date("2021-10-22") == date(2021, 10, 22)
    assert parse_release_date("") is None
    assert parse_release_date(None) is None
    assert parse_release_date("2021-02-30") is None


def test_release_year_defaults_to_unknown():
    assert release_year("1999-03-30") == "1999"
    assert release_year(None) == "Unknown"


def test_meta_id_round_trip():
    assert build_meta_id(603) == "tmdb-603"
    assert parse_meta_id("tmdb-603") == 603
    assert parse_meta_id("tt0133093") is None


def test_build_image_url_keeps_absolute_urls():
    base = "https://image.tmdb.org/t/p/w500"
    assert build_image_url("/a.jpg", base) == "https://image.tmdb.org/t/p/w500/a.jpg"
    assert build_image_url("https://cdn.example.com/a.jpg", base) == "https://cdn.example.com/a.jpg"
    assert build_image_url(None, base) is None
