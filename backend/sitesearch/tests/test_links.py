import pytest

from sitesearch.worker_tasks.links import canonicalize, relative_path, same_site, with_www

BASE = "https://example.com"


@pytest.mark.parametrize(
    ("href", "expected"),
    [
        ("/a/b", "https://www.example.com/a/b/"),
        ("https://www.example.com/x/?q=1#frag", "https://www.example.com/x/"),
        ("https://example.com/x", "https://www.example.com/x/"),
        ("docs/intro", "https://www.example.com/docs/intro/"),
        ("//example.com/about", "https://www.example.com/about/"),
        ("/a//b///c", "https://www.example.com/a/b/c/"),
        ("/contacts#team", "https://www.example.com/contacts/"),
        ("./x", "https://www.example.com/x/"),
        ("/a/../b/./c", "https://www.example.com/b/c/"),
        ("../../x", "https://www.example.com/x/"),
        ("https://EXAMPLE.com/Docs", "https://www.example.com/Docs/"),
        ("HTTPS://Www.Example.COM/", "https://www.example.com/"),
        ("/", None),
        ("#", None),
        ("", None),
        (None, None),
        ("mailto:info@example.com", None),
        ("tel:+123456", None),
        ("javascript:void(0)", None),
        ("ftp://example.com/file", None),
        ("https://other.org/page", None),
        ("//other.org/page", None),
    ],
)
def test_canonicalize(href: str | None, expected: str | None) -> None:
    assert canonicalize(href, BASE) == expected


def test_canonicalize_is_stable() -> None:
    link = canonicalize("/news/2024?page=2", BASE)
    assert link is not None
    assert canonicalize(link, BASE) == link


def test_canonicalize_base_with_trailing_slash() -> None:
    assert canonicalize("/a", "https://www.example.com/") == "https://www.example.com/a/"


def test_with_www() -> None:
    assert with_www("https://example.com/a") == "https://www.example.com/a"
    assert with_www("https://www.example.com/a") == "https://www.example.com/a"
    assert with_www("http://localhost:8000/a") == "http://localhost:8000/a"
    assert with_www("http://127.0.0.1/a") == "http://127.0.0.1/a"


def test_same_site_ignores_www() -> None:
    assert same_site("https://www.example.com/a", BASE)
    assert same_site("http://example.com/", "https://www.example.com")
    assert not same_site("https://example.org/", BASE)
    assert not same_site("mailto:someone@example.com", BASE)


def test_relative_path() -> None:
    assert relative_path("https://www.example.com/") == "/"
    assert relative_path("https://www.example.com") == "/"
    assert relative_path("https://www.example.com/a/b/") == "/a/b/"
