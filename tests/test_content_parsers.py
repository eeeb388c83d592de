from datetime import date
from pathlib import Path

import pytest

from blogcorpus.content.models import ContentItem, DraftState
from blogcorpus.content.parsers import (
    MalformedFrontMatter,
    load_content_item,
    parse_content_item,
    split_front_matter,
)

FIXTURE_DIR = Path(__file__).parent / "fixtures" / "content" / "posts"


def _parse(front_matter: str, body: str = "Body") -> ContentItem:
    return parse_content_item(f"---\n{front_matter}---\n{body}", "post.md", slug_hint="post")


def test_loads_complete_item() -> None:
    item = load_content_item(FIXTURE_DIR / "example.md")

    assert item.slug == "example-post"
    assert item.title == "Example Post"
    assert item.published_date == date(2024, 3, 14)
    assert item.tags == frozenset({"testing", "examples"})
    assert item.module == "readability-and-flow"
    assert item.draft_state is DraftState.PUBLISHED
    assert "Hello world" in item.body


def test_unknown_fields_are_preserved() -> None:
    item = load_content_item(FIXTURE_DIR / "example.md")

    assert item.extra == {"series": "craft-notes"}


def test_slug_defaults_to_lowercased_filename() -> None:
    item = load_content_item(FIXTURE_DIR / "Minimal.md")

    assert item.slug == "minimal"
    assert item.draft_state is DraftState.DRAFT
    assert item.published_date is None


def test_page_bundle_takes_directory_name() -> None:
    item = load_content_item(FIXTURE_DIR / "the-damp-principle" / "index.md")

    assert item.slug == "the-damp-principle"
    assert item.published_date == date(2023, 11, 2)
    assert item.module == "readability-and-flow"


def test_rejects_missing_front_matter_end(tmp_path: Path) -> None:
    tmp = tmp_path / "broken.md"
    tmp.write_text("---\ntitle: Missing\n", encoding="utf-8")
    with pytest.raises(MalformedFrontMatter) as excinfo:
        load_content_item(tmp)

    assert "broken.md" in str(excinfo.value)


def test_rejects_missing_title() -> None:
    with pytest.raises(MalformedFrontMatter, match="title"):
        _parse("date: 2024-01-01\n")


def test_rejects_unparseable_date() -> None:
    with pytest.raises(MalformedFrontMatter, match="unparseable date"):
        _parse("title: Post\ndate: next tuesday\n")


def test_rejects_impossible_calendar_date() -> None:
    with pytest.raises(MalformedFrontMatter, match="not valid YAML"):
        _parse("title: Post\ndate: 2024-02-30\n")


def test_rejects_non_boolean_draft() -> None:
    with pytest.raises(MalformedFrontMatter, match="draft"):
        _parse("title: Post\ndraft: maybe\n")


def test_rejects_invalid_status() -> None:
    with pytest.raises(MalformedFrontMatter, match="invalid status"):
        _parse("title: Post\nstatus: archived\n")


def test_status_and_draft_must_agree() -> None:
    with pytest.raises(MalformedFrontMatter, match="disagree"):
        _parse("title: Post\ndraft: true\nstatus: published\n")


def test_status_spelling_is_accepted() -> None:
    item = _parse("title: Post\nstatus: draft\n")

    assert item.draft_state is DraftState.DRAFT


def test_rejects_more_than_one_module() -> None:
    with pytest.raises(MalformedFrontMatter, match="at most one module"):
        _parse("title: Post\ncategories: [one, two]\n")


def test_module_and_matching_category_are_one_reference() -> None:
    item = _parse("title: Post\nmodule: craft\ncategories: craft\n")

    assert item.module == "craft"


def test_single_string_tag_is_accepted() -> None:
    item = _parse("title: Post\ntags: solo\n")

    assert item.tags == frozenset({"solo"})


def test_missing_front_matter_block_is_rejected() -> None:
    with pytest.raises(MalformedFrontMatter, match="missing"):
        parse_content_item("Just a body.", "plain.md", slug_hint="plain")


def test_split_front_matter_requires_mapping() -> None:
    with pytest.raises(MalformedFrontMatter, match="mapping"):
        split_front_matter("---\n- a\n- b\n---\nBody")
