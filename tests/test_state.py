from pathlib import Path

from blogcorpus.config import Config
from blogcorpus.state import PublicationState, state_path


def test_missing_state_is_empty(tmp_path: Path) -> None:
    state = PublicationState.load(tmp_path / "absent.json")

    assert state.published_slugs == frozenset()


def test_state_round_trips_sorted(tmp_path: Path) -> None:
    path = tmp_path / "cache" / "publication-state.json"
    PublicationState.from_slugs(["b", "a", "b"]).save(path)

    loaded = PublicationState.load(path)

    assert loaded.published == ["a", "b"]


def test_corrupt_state_is_treated_as_empty(tmp_path: Path) -> None:
    path = tmp_path / "publication-state.json"
    path.write_text("{not json", encoding="utf-8")

    assert PublicationState.load(path).published == []


def test_state_path_lives_in_cache_dir(tmp_path: Path) -> None:
    config = Config(cache_dir=tmp_path / ".cache")

    assert state_path(config) == tmp_path / ".cache" / "publication-state.json"
