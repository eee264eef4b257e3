import pytest

from src.scraping.filter.sensitive_filter import SensitiveFilter


def test_filter_replaces_phone_number():
    sf = SensitiveFilter([r"\b\d{11}\b"])
    assert sf.filter("Call 13812345678") == "Call [FILTERED]"


def test_filter_replaces_every_occurrence():
    sf = SensitiveFilter([r"secret"])
    assert sf.filter("secret, SECRET and Secret") == "[FILTERED], [FILTERED] and [FILTERED]"


def test_no_patterns_returns_input_unchanged():
    sf = SensitiveFilter()
    text = "email me at someone@example.com"
    assert sf.filter(text) == text


def test_filter_is_idempotent_when_replacement_does_not_match():
    sf = SensitiveFilter(SensitiveFilter.get_default_patterns())
    once = sf.filter("mail a@b.com from 10.0.0.1")
    assert sf.filter(once) == once


def test_custom_replacement():
    sf = SensitiveFilter([r"\d+"], replacement="***")
    assert sf.filter("pin 1234") == "pin ***"
    sf.set_replacement(r"\1<gone>")
    assert sf.filter("pin 1234") == r"pin \1<gone>"


def test_invalid_patterns_are_dropped():
    sf = SensitiveFilter(["(unclosed", r"\d{3}"])
    assert sf.patterns == [r"\d{3}"]
    assert sf.filter("abc 123") == "abc [FILTERED]"


def test_update_patterns_replaces_previous():
    sf = SensitiveFilter(["foo"])
    sf.update_patterns(["bar"])
    assert sf.filter("foo bar") == "foo [FILTERED]"


def test_has_sensitive_info():
    sf = SensitiveFilter(SensitiveFilter.get_default_patterns())
    assert sf.has_sensitive_info("write to ops@example.com")
    assert not sf.has_sensitive_info("nothing to see here")
    assert not SensitiveFilter().has_sensitive_info("ops@example.com")


def test_has_sensitive_info_is_repeatable():
    sf = SensitiveFilter([r"\d{3}-\d{2}-\d{4}"])
    text = "ssn 123-45-6789"
    assert sf.has_sensitive_info(text)
    assert sf.has_sensitive_info(text)


def test_get_sensitive_matches_deduplicates():
    sf = SensitiveFilter([r"\b[a-z]+@example\.com\b"])
    matches = sf.get_sensitive_matches("a@example.com, b@example.com, a@example.com")
    assert matches == {"a@example.com", "b@example.com"}


@pytest.mark.parametrize(
    "literal",
    [
        "john.doe@example.com",
        "api_key=sk-live-abcdef123456",
        "access-token: abc.def.ghi",
        "password=hunter2",
        "11010519491231002X",
        "4111 1111 1111 1111",
        "6222021234567890123",
        "13812345678",
        "123-45-6789",
        "192.168.1.1",
    ],
)
def test_default_patterns_fully_replace_representative_literals(literal):
    sf = SensitiveFilter(SensitiveFilter.get_default_patterns())
    assert sf.filter(f"before {literal} after") == "before [FILTERED] after"


def test_default_patterns_leave_plain_text_alone():
    sf = SensitiveFilter(SensitiveFilter.get_default_patterns())
    text = "The meeting is on Tuesday in room 42."
    assert sf.filter(text) == text
