"""Pydantic configuration models for the extraction engine."""

from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

DEFAULT_ALLOWED_EMBED_HOSTS = frozenset({"twitter.com", "platform.twitter.com", "x.com"})
DEFAULT_LAZY_ATTRS = ("data-src", "data-lazy-src", "data-original")
DEFAULT_MULTI_TENANT_HOSTS = frozenset({"blog.livedoor.jp"})

MOBILE_USER_AGENTS = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_4 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.4 Mobile/15E148 Safari/604.1",
    "Mozilla/5.0 (Linux; Android 14; Pixel 8 Pro) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.6367.78 Mobile Safari/537.36",
    "Mozilla/5.0 (Android 14; Mobile; rv:126.0) Gecko/126.0 Firefox/126.0",
)


class PaginationConfig(BaseModel):
    """Selectors and limits for multi-page article assembly."""

    container_selector: str = Field(
        "div#article-contents",
        description="Body container that must be present for pagination",
    )
    body_marker_selector: str = Field(
        "div.article-body",
        description="Article-body marker that must be present for pagination",
    )
    next_link_selector: str = Field(
        "p.next > a.pagingNav",
        description="Link to the next page of the article",
    )
    append_target_selector: str = Field(
        "div#article-contents, div.article-body",
        description="Element whose children are collected from, and appended to",
    )
    pager_selector: str = Field(
        "div.article-inner-pager",
        description="Pager widgets removed after assembly",
    )
    max_pages: int = Field(20, ge=1, description="Maximum pages per article, first page included")

    model_config = {"extra": "forbid"}


class NetworkConfig(BaseModel):
    """Configuration for the HTTP page fetcher."""

    proxy: Optional[str] = Field(None, description="HTTP/HTTPS proxy URL")
    user_agents: tuple[str, ...] = Field(
        MOBILE_USER_AGENTS,
        min_length=1,
        description="User-Agent strings rotated per request",
    )
    accept_language: str = Field("ja-JP,ja;q=0.9", description="Accept-Language header")
    max_retries: int = Field(3, ge=0, description="Maximum retry attempts for failed requests")
    timeout: float = Field(20.0, gt=0, description="Per-request timeout in seconds")
    article_deadline: Optional[float] = Field(
        None,
        gt=0,
        description="Overall seconds allowed for one article including pagination (None = no deadline)",
    )

    model_config = {"extra": "forbid"}


class EngineConfig(BaseModel):
    """
    Root configuration for the extraction engine.

    Example:
        config = EngineConfig(
            allowed_embed_hosts={"platform.twitter.com", "www.youtube.com"},
            max_concurrent=10,
        )

    YAML format:
        allowed_embed_hosts:
          - platform.twitter.com
          - www.youtube.com
        pagination:
          max_pages: 10
        network:
          timeout: 15
    """

    allowed_embed_hosts: frozenset[str] = Field(
        DEFAULT_ALLOWED_EMBED_HOSTS,
        description="Hosts whose scripts and iframes survive sanitization",
    )
    lazy_attrs: tuple[str, ...] = Field(
        DEFAULT_LAZY_ATTRS,
        description="Lazy-loading attributes checked before src, in priority order",
    )
    general_remove_selectors: tuple[str, ...] = Field(
        default_factory=tuple,
        description="Selectors removed from every page in the generic pipeline",
    )
    multi_tenant_hosts: frozenset[str] = Field(
        DEFAULT_MULTI_TENANT_HOSTS,
        description="Hosts whose first path segment is part of the rule key",
    )
    rules_file: Optional[Path] = Field(None, description="YAML file of per-site rules")

    pagination: PaginationConfig = Field(default_factory=PaginationConfig)
    network: NetworkConfig = Field(default_factory=NetworkConfig)

    max_concurrent: int = Field(5, ge=1, description="Articles extracted concurrently")
    cpu_workers: int = Field(4, ge=1, description="Thread pool workers for DOM processing")

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        "INFO",
        description="Logging level",
    )
    log_file: Optional[Path] = Field(None, description="Log file path")

    model_config = {"extra": "forbid"}

    @field_validator("allowed_embed_hosts", "multi_tenant_hosts", mode="before")
    @classmethod
    def _normalize_hosts(cls, v: object) -> object:
        if isinstance(v, (list, tuple, set, frozenset)):
            return frozenset(str(host).strip().lower() for host in v if str(host).strip())
        return v

    def to_yaml(self) -> str:
        """Serialize config to YAML string."""
        import yaml

        data = self.model_dump(mode="json", exclude_none=True)
        # Sets dump in arbitrary order; sort them for stable files
        for key in ("allowed_embed_hosts", "multi_tenant_hosts"):
            data[key] = sorted(data[key])
        return yaml.dump(data, default_flow_style=False, allow_unicode=True)

    @classmethod
    def from_yaml(cls, yaml_str: str) -> "EngineConfig":
        """Load config from YAML string."""
        import yaml

        data = yaml.safe_load(yaml_str) or {}
        return cls.model_validate(data)

    @classmethod
    def from_yaml_file(cls, path: Path) -> "EngineConfig":
        """Load config from YAML file."""
        return cls.from_yaml(path.read_text(encoding="utf-8"))
