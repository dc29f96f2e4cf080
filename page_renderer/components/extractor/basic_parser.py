"""
Basic HTML lookup utility using BeautifulSoup.

This module provides the `BasicParser` class, which wraps BeautifulSoup with
the small set of lookups the metadata extractors chain together: the page
title, meta-tag content by attribute, and the text of the first element
matching a CSS selector.
"""
from bs4 import BeautifulSoup
from typing import Optional

from page_renderer.core.exceptions import ExtractorError


class BasicParser:
    """
    A thin BeautifulSoup wrapper over one serialized HTML document.

    Attributes:
        soup (BeautifulSoup): An instance of BeautifulSoup representing the parsed HTML.
    """
    def __init__(self, html_content: str):
        """
        Initializes the BasicParser with the provided HTML content.

        Args:
            html_content (str): The HTML content string to be parsed.

        Raises:
            ExtractorError: If `html_content` is None, or if BeautifulSoup
                            fails to build a document from it.
        """
        if html_content is None:
            raise ExtractorError("HTML content cannot be None for BasicParser.")

        try:
            # 'html.parser' is Python's built-in parser and needs no C extensions.
            self.soup = BeautifulSoup(html_content, 'html.parser')
        except Exception as e:
            raise ExtractorError(f"Failed to initialize BeautifulSoup parser: {e}")

    def get_title(self) -> Optional[str]:
        """
        Returns the stripped text of the <title> tag, or None if absent or empty.
        """
        if self.soup.title and self.soup.title.string:
            title = self.soup.title.string.strip()
            return title or None
        return None

    def get_meta(self, attribute: str, value: str) -> Optional[str]:
        """
        Returns the stripped `content` of the first <meta> whose `attribute` equals `value`.

        Args:
            attribute (str): The identifying attribute, e.g. 'name', 'property' or 'itemprop'.
            value (str): The attribute value to match, e.g. 'og:title'.
        """
        tag = self.soup.find('meta', attrs={attribute: value})
        if tag is None:
            return None
        content = tag.get('content')
        if content is None:
            return None
        content = str(content).strip()
        return content or None

    def select_text(self, selector: str) -> Optional[str]:
        """
        Returns the text of the first element matching `selector` that has non-blank text.
        """
        try:
            elements = self.soup.select(selector)
        except Exception as e:
            raise ExtractorError(f"Invalid CSS selector '{selector}': {e}")
        for element in elements:
            text = element.get_text(separator="\n").strip()
            if text:
                return text
        return None

    def select_attribute(self, selector: str, attribute: str) -> Optional[str]:
        """
        Returns `attribute` of the first element matching `selector` that carries it non-blank.
        """
        for element in self.soup.select(selector):
            value = element.get(attribute)
            if value and str(value).strip():
                return str(value).strip()
        return None
