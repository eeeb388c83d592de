from pathlib import Path

import pytest

from blogcorpus.config import Config
from blogcorpus.ingest import CorpusError, load_corpus, load_modules


def _write(path: Path, body: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(body, encoding="utf-8")


def _config(tmp_path: Path) -> Config:
    content = tmp_path / "content"
    return Config(content_dir=content, modules_file=content / "modules.yml")


def test_load_corpus_from_nested_directories(tmp_path: Path) -> None:
    content = tmp_path / "content"
    _write(content / "posts" / "first.md", "---\ntitle: First\ndate: 2024-01-01\n---\nFirst body")
    _write(content / "notes" / "second.markdown", "---\ntitle: Second\ndraft: true\n---\nSecond body")
    _write(content / "notes" / "ignore.txt", "Plain text")

    corpus = load_corpus(_config(tmp_path))

    assert sorted(item.slug for item in corpus.items) == ["first", "second"]
    assert corpus.unreadable == ()
    assert corpus.modules == ()


def test_unparseable_items_are_recorded_not_raised(tmp_path: Path) -> None:
    content = tmp_path / "content"
    _write(content / "posts" / "good.md", "---\ntitle: Good\ndate: 2024-01-01\n---\nBody")
    _write(content / "posts" / "bad.md", "---\ndate: 2024-01-01\n---\nNo title")

    corpus = load_corpus(_config(tmp_path))

    assert [item.slug for item in corpus.items] == ["good"]
    assert [entry.slug for entry in corpus.unreadable] == ["bad"]
    assert "bad.md" in corpus.unreadable[0].source_path
    assert corpus.known_slugs == frozenset({"good", "bad"})


def test_missing_content_directory_is_fatal(tmp_path: Path) -> None:
    with pytest.raises(CorpusError):
        load_corpus(_config(tmp_path))


def test_invalid_module_yaml_is_fatal(tmp_path: Path) -> None:
    content = tmp_path / "content"
    content.mkdir()
    _write(content / "modules.yml", "- key: [unclosed\n")

    with pytest.raises(CorpusError):
        load_corpus(_config(tmp_path))


def test_load_modules_accepts_list_form(tmp_path: Path) -> None:
    path = tmp_path / "modules.yml"
    _write(
        path,
        "- key: readability\n  title: Readability & Flow\n  members: [post-a, post-b]\n"
        "- key: testing\n",
    )

    modules, failures = load_modules(path)

    assert failures == []
    assert [module.key for module in modules] == ["readability", "testing"]
    assert modules[0].title == "Readability & Flow"
    assert modules[0].member_slugs == ("post-a", "post-b")
    assert modules[1].title == "testing"
    assert modules[1].member_slugs == ()


def test_load_modules_accepts_mapping_form(tmp_path: Path) -> None:
    path = tmp_path / "modules.yml"
    _write(path, "readability:\n  title: Readability\n  members:\n    - post-a\nempty:\n")

    modules, failures = load_modules(path)

    assert failures == []
    assert [module.key for module in modules] == ["readability", "empty"]
    assert modules[0].member_slugs == ("post-a",)


def test_malformed_module_declaration_is_recorded(tmp_path: Path) -> None:
    path = tmp_path / "modules.yml"
    _write(path, "- key: broken\n  members: not-a-list\n- key: fine\n")

    modules, failures = load_modules(path)

    assert [module.key for module in modules] == ["fine"]
    assert len(failures) == 1
    assert failures[0].slug == "broken"
    assert "members" in failures[0].message


def test_missing_modules_file_declares_nothing(tmp_path: Path) -> None:
    modules, failures = load_modules(tmp_path / "absent.yml")

    assert modules == []
    assert failures == []
