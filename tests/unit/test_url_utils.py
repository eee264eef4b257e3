import base64

import pytest

from src.utils.url import extract_domain, parse_absolute_url, url_to_id


def test_parse_absolute_url():
    assert parse_absolute_url("https://example.com/a").hostname == "example.com"
    assert parse_absolute_url("example.com/a") is None
    assert parse_absolute_url("https://[::1") is None
    assert parse_absolute_url("") is None


def test_extract_domain():
    assert extract_domain("https://WWW.Example.com:8080/x") == "www.example.com"
    assert extract_domain("garbage") == ""


def test_url_to_id_is_alphanumeric_base64():
    url = "https://example.com/?q=1"
    expected = "".join(c for c in base64.b64encode(url.encode()).decode() if c.isalnum())
    assert url_to_id(url) == expected


def test_url_to_id_caps_length():
    url = "https://example.com/" + "x" * 300
    capped = url_to_id(url, max_length=100)
    assert len(capped) == 100
    assert capped.isalnum()
    assert url_to_id(url) != capped


def test_url_to_id_rejects_empty():
    with pytest.raises(ValueError):
        url_to_id("")
