"""Document - thin query facade over a parsed HTML page.

Wraps BeautifulSoup so the page readers only deal with CSS selectors,
attribute lookups and normalised text, never with the tree API itself.
"""

import html

from bs4 import BeautifulSoup, Tag

from src.timetable.utils import normalize_text


class Document:
    """A parsed HTML page queried with CSS selectors."""

    def __init__(self, markup: str) -> None:
        self.markup = markup
        self.soup = BeautifulSoup(markup, "html.parser")

    def select(self, selector: str) -> list[Tag]:
        """All elements matching `selector`, in document order."""
        return self.soup.select(selector)

    def select_one(self, selector: str) -> Tag | None:
        return self.soup.select_one(selector)

    @staticmethod
    def attr(element: Tag, name: str) -> str | None:
        """Attribute value with entities decoded and whitespace trimmed, or None."""
        value = element.get(name)
        if value is None:
            return None
        if isinstance(value, list):
            # multi-valued attributes such as class
            value = " ".join(value)
        return html.unescape(value).strip()

    @staticmethod
    def attrs(element: Tag, names: tuple[str, ...]) -> list[str]:
        """Non-empty values of the named attributes, in the order asked for."""
        values = []
        for name in names:
            value = Document.attr(element, name)
            if value:
                values.append(value)
        return values

    @staticmethod
    def text(element: Tag) -> str:
        """Concatenated text content of `element`, normalised."""
        return normalize_text(element.get_text())

    def input_value(self, selector: str, attr: str = "value") -> str | None:
        """Attribute of the first element matching `selector`."""
        element = self.select_one(selector)
        if element is None:
            return None
        return self.attr(element, attr)
