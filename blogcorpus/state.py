"""Helpers for tracking which items were published by the previous build."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from .config import Config

STATE_FILENAME = "publication-state.json"
STATE_VERSION = 1


@dataclass
class PublicationState:
    """Snapshot of the slugs that were published by the last successful build."""

    version: int = STATE_VERSION
    published: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "version": self.version,
            "published": sorted(self.published),
        }

    @property
    def published_slugs(self) -> frozenset[str]:
        return frozenset(self.published)

    @classmethod
    def empty(cls) -> "PublicationState":
        return cls(version=STATE_VERSION, published=[])

    @classmethod
    def from_slugs(cls, slugs: Iterable[str]) -> "PublicationState":
        return cls(version=STATE_VERSION, published=sorted(set(slugs)))

    @classmethod
    def load(cls, path: Path) -> "PublicationState":
        if not path.exists():
            return cls.empty()
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            return cls.empty()
        if not isinstance(payload, dict):
            return cls.empty()

        version = int(payload.get("version") or STATE_VERSION)
        published = [str(slug) for slug in payload.get("published") or []]
        return cls(version=version, published=published)

    def save(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(self.to_dict(), ensure_ascii=False, indent=2),
            encoding="utf-8",
        )


def state_path(config: Config) -> Path:
    return config.cache_dir / STATE_FILENAME
