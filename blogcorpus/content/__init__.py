"""Content model and front-matter parsing for blog corpora."""

from .models import ContentItem, Corpus, DraftState, Module, ParseFailure
from .parsers import MalformedFrontMatter, load_content_item, parse_content_item, slug_from_path

__all__ = [
    "ContentItem",
    "Corpus",
    "DraftState",
    "MalformedFrontMatter",
    "Module",
    "ParseFailure",
    "load_content_item",
    "parse_content_item",
    "slug_from_path",
]
