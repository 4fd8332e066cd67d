from sitesearch.utils.html import extract_links, page_title, visible_text

HTML = """
<html>
  <head><title> Cats and dogs </title><meta name="x" content="meta words"></head>
  <body>
    <script>var hidden = "script words";</script>
    <style>.x { color: red }</style>
    <!-- a comment -->
    <h1>Cats</h1>
    <p>Dogs   chase
       cats.</p>
    <a href="/a">first</a><a name="anchor">no href</a><a href="https://x.org/">second</a>
  </body>
</html>
"""


def test_page_title() -> None:
    assert page_title(HTML) == "Cats and dogs"
    assert page_title("<p>no title</p>") == ""
    assert page_title("") == ""


def test_visible_text_drops_markup() -> None:
    text = visible_text(HTML)
    assert "Cats" in text
    assert "Dogs chase cats." in text
    assert "script words" not in text
    assert "color" not in text
    assert "a comment" not in text
    assert "meta words" not in text


def test_extract_links_keeps_order() -> None:
    assert extract_links(HTML) == ["/a", "https://x.org/"]
