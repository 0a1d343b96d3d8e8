import pytest

from app.core.url_utils import canonical_url


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("https://Example.COM/Path", "https://example.com/Path"),
        ("HTTP://example.com/a?utm_source=x#frag", "http://example.com/a"),
        ("https://example.com", "https://example.com/"),
        ("https://example.com:443/x", "https://example.com/x"),
        ("http://example.com:80/x", "http://example.com/x"),
        ("https://example.com:8443/x", "https://example.com:8443/x"),
        ("  https://example.com/x  ", "https://example.com/x"),
        ("https://user:pw@example.com/x", "https://example.com/x"),
        ("http://[::1]:8080/x", "http://[::1]:8080/x"),
    ],
)
def test_canonical_url_normalizes(raw: str, expected: str) -> None:
    assert canonical_url(raw) == expected


def test_trailing_slash_is_significant() -> None:
    assert canonical_url("https://example.com/a/") != canonical_url("https://example.com/a")


def test_path_case_is_preserved() -> None:
    assert canonical_url("https://example.com/A") != canonical_url("https://example.com/a")


@pytest.mark.parametrize(
    "raw",
    [
        "",
        "   ",
        "not a url",
        "/relative/path",
        "ftp://example.com/file",
        "javascript:alert(1)",
        "mailto:someone@example.com",
        "https://",
        "https://example.com:99999/x",
        "https://exa\x00mple.com/",
        "https://example.com/\x07bell",
    ],
)
def test_invalid_urls_have_no_canonical_form(raw: str) -> None:
    assert canonical_url(raw) is None


def test_oversized_url_is_rejected() -> None:
    assert canonical_url("https://example.com/" + "a" * 9000) is None


def test_non_string_is_rejected() -> None:
    assert canonical_url(None) is None  # type: ignore[arg-type]


@pytest.mark.parametrize(
    ("left", "right"),
    [
        ("https://a.com/a b", "https://a.com/a%20b"),
        ("https://a.com/./x", "https://a.com/x"),
        ("https://a.com/a/../x", "https://a.com/x"),
        ("https://a.com/a/%2E%2E/x", "https://a.com/x"),
        ("https://a.com/café", "https://a.com/caf%C3%A9"),
        ("https://a.com/a\\b", "https://a.com/a/b"),
    ],
)
def test_equivalent_paths_share_a_key(left: str, right: str) -> None:
    assert canonical_url(left) == canonical_url(right)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("https://a.com/a b", "https://a.com/a%20b"),
        ("https://a.com/x/.", "https://a.com/x/"),
        ("https://a.com/x/..", "https://a.com/"),
        ("https://a.com/../../x", "https://a.com/x"),
        ("https://a.com/a%2fb", "https://a.com/a%2fb"),
    ],
)
def test_path_is_serialized_like_a_browser(raw: str, expected: str) -> None:
    assert canonical_url(raw) == expected
