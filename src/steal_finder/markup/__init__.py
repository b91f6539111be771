"""Structural query engines used for listing extraction."""

from .base import Element, MarkupParser
from .soup import SoupElement, SoupParser

__all__ = ["Element", "MarkupParser", "SoupElement", "SoupParser"]
