import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationInfo, field_validator

CONFIG_FILENAME = "blogcorpus.yml"
ROUTE_PLACEHOLDERS = {
    "post_route": "{slug}",
    "module_route": "{key}",
    "tag_route": "{tag}",
}


class RouteConfig(BaseModel):
    """URL patterns used when planning the route table and resolving links."""

    post_route: str = Field(default="/posts/{slug}/", description="Path pattern for content items.")
    module_route: str = Field(
        default="/posts/{key}/",
        description="Path pattern for module index pages; shares the post namespace by default.",
    )
    tag_route: str = Field(default="/tags/{tag}/", description="Path pattern for tag listings.")

    @field_validator("post_route", "module_route", "tag_route")
    def _check_pattern(cls, value: str, info: ValidationInfo) -> str:
        text = value.strip()
        placeholder = ROUTE_PLACEHOLDERS[info.field_name]
        if text.count(placeholder) != 1:
            raise ValueError(f"{info.field_name} must contain '{placeholder}' exactly once.")
        if not text.startswith("/"):
            text = f"/{text}"
        return text


class Config(BaseModel):
    project_name: str = Field(default="Blog Corpus")
    content_dir: Path = Field(default=Path("content"))
    modules_file: Path = Field(
        default=Path("content/modules.yml"),
        description="YAML file declaring modules and their ordered member slugs.",
    )
    output_dir: Path = Field(default=Path("public"))
    cache_dir: Path = Field(default=Path(".cache"))
    routes: RouteConfig = Field(default_factory=RouteConfig)
    include_drafts: bool = Field(
        default=False,
        description="Emit routes for draft items (preview builds).",
    )
    tag_pattern: str = Field(
        default=r"^[a-z0-9]+(?:-[a-z0-9]+)*$",
        description="Regular expression every tag must fully match.",
    )
    workers: int = Field(
        default=4,
        ge=1,
        le=64,
        description="Worker threads used for per-module and per-item validation.",
    )

    @field_validator("content_dir", "modules_file", "output_dir", "cache_dir", mode="before")
    def _ensure_path(cls, value: Any) -> Path:
        return Path(value)

    @field_validator("tag_pattern")
    def _check_tag_pattern(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as exc:
            raise ValueError(f"tag_pattern is not a valid regular expression: {exc}") from None
        return value


def load_config(path: str | Path) -> Config:
    """Load configuration and resolve relative paths based on the config location.

    The ``path`` argument may point to a file (e.g., ``/blog/blogcorpus.yml``) or a
    directory containing that file. All relative paths inside the configuration
    are interpreted relative to the directory holding the config file.
    """
    candidate = Path(path)
    data: dict[str, Any] = {}
    base_dir: Path
    if candidate.is_dir():
        # A project directory without a config file runs on defaults.
        config_file = candidate / CONFIG_FILENAME
        if config_file.exists():
            data = _read_yaml(config_file)
        base_dir = candidate.resolve()
    else:
        if not candidate.exists():
            raise FileNotFoundError(candidate)
        data = _read_yaml(candidate)
        base_dir = candidate.parent.resolve()

    cfg = Config(**data)

    def _abs(value: Path) -> Path:
        return value if value.is_absolute() else (base_dir / value).resolve()

    cfg.content_dir = _abs(cfg.content_dir)
    cfg.modules_file = _abs(cfg.modules_file)
    cfg.output_dir = _abs(cfg.output_dir)
    cfg.cache_dir = _abs(cfg.cache_dir)
    return cfg


def _read_yaml(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration in {path} must be a mapping.")
    return data
