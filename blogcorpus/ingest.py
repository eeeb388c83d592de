"""Read the content directory and module declarations into a corpus snapshot."""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Iterable, Iterator

import yaml
from jsonschema import Draft202012Validator

from .config import Config
from .content import (
    ContentItem,
    Corpus,
    MalformedFrontMatter,
    Module,
    ParseFailure,
    load_content_item,
    slug_from_path,
)

SUPPORTED_SUFFIXES = {".md", ".markdown", ".mdx"}
SCHEMA_PACKAGE = "blogcorpus.schemas"
MODULE_SCHEMA_NAME = "module_declaration.schema.json"

logger = logging.getLogger(__name__)


class CorpusError(RuntimeError):
    """Raised when the corpus root cannot be enumerated or read."""


def load_corpus(config: Config) -> Corpus:
    """Load every content unit and module declaration below the configured root."""
    root = config.content_dir
    if not root.is_dir():
        raise CorpusError(f"Content directory not found: {root}")

    items: list[ContentItem] = []
    unreadable: list[ParseFailure] = []
    try:
        paths = list(_iter_content_files(root))
    except OSError as exc:
        raise CorpusError(f"Unable to enumerate content under {root}: {exc}") from exc

    for path in paths:
        try:
            items.append(load_content_item(path))
        except (MalformedFrontMatter, UnicodeDecodeError) as exc:
            logger.debug("Unparseable content unit %s: %s", path, exc)
            unreadable.append(
                ParseFailure(slug=slug_from_path(path), source_path=str(path), message=str(exc))
            )
        except OSError as exc:
            raise CorpusError(f"Unable to read {path}: {exc}") from exc

    modules, unreadable_modules = load_modules(config.modules_file)
    logger.debug(
        "Loaded %d item(s), %d module(s), %d unparseable unit(s) from %s",
        len(items),
        len(modules),
        len(unreadable) + len(unreadable_modules),
        root,
    )
    return Corpus(
        items=tuple(items),
        modules=tuple(modules),
        unreadable=tuple(unreadable),
        unreadable_modules=tuple(unreadable_modules),
    )


def load_modules(path: Path) -> tuple[list[Module], list[ParseFailure]]:
    """Read module declarations; a missing file declares no modules."""
    if not path.exists():
        logger.info("Module declarations not found at %s; no modules declared.", path)
        return [], []
    try:
        with path.open("r", encoding="utf-8") as handle:
            payload = yaml.safe_load(handle)
    except OSError as exc:
        raise CorpusError(f"Unable to read module declarations {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise CorpusError(f"Module declarations in {path} are not valid YAML: {exc}") from exc

    modules: list[Module] = []
    failures: list[ParseFailure] = []
    for index, declaration in enumerate(_iter_declarations(payload, path)):
        key = declaration.get("key") if isinstance(declaration, dict) else None
        identity = key.strip() if isinstance(key, str) and key.strip() else f"modules[{index}]"
        try:
            modules.append(_parse_module(declaration, path))
        except MalformedFrontMatter as exc:
            failures.append(ParseFailure(slug=identity, source_path=str(path), message=str(exc)))
    return modules, failures


def _iter_declarations(payload: Any, path: Path) -> Iterator[Any]:
    if payload is None:
        return
    if isinstance(payload, dict):
        # Mapping form: key -> {title, members}
        for key, entry in payload.items():
            if entry is None:
                entry = {}
            yield {**entry, "key": key} if isinstance(entry, dict) else entry
        return
    if isinstance(payload, list):
        yield from payload
        return
    raise CorpusError(f"Module declarations in {path} must be a list or a mapping.")


def _parse_module(declaration: Any, path: Path) -> Module:
    validator = _get_module_validator()
    errors = sorted(validator.iter_errors(declaration), key=lambda err: [str(elem) for elem in err.path])
    if errors:
        first = errors[0]
        pointer = "/".join(str(elem) for elem in first.path)
        message = f"{path}: {first.message}"
        if pointer:
            message += f" (at {pointer})"
        raise MalformedFrontMatter(message, path=str(path))

    key = declaration["key"].strip()
    members = declaration.get("members") or []
    return Module(
        key=key,
        title=declaration.get("title") or key,
        member_slugs=tuple(slug.strip() for slug in members),
        source_path=str(path),
    )


@lru_cache(maxsize=1)
def _get_module_validator() -> Draft202012Validator:
    schema = _load_schema(MODULE_SCHEMA_NAME)
    return Draft202012Validator(schema)


def _load_schema(name: str) -> dict[str, Any]:
    with resources.files(SCHEMA_PACKAGE).joinpath(name).open("r", encoding="utf-8") as handle:
        payload = json.load(handle)
    if not isinstance(payload, dict):
        raise ValueError(f"Schema '{name}' must be a JSON object.")
    return payload


def _iter_content_files(root: Path) -> Iterable[Path]:
    directories = sorted(p for p in root.rglob("*") if p.is_dir())
    directories.insert(0, root)

    for directory in directories:
        for path in sorted(directory.iterdir()):
            if path.is_file() and path.suffix.lower() in SUPPORTED_SUFFIXES:
                yield path
