"""Rule lookup by site."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator, Mapping
from importlib import resources
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable
from urllib.parse import urlsplit

import yaml
from pydantic import ValidationError

from ..errors import RuleError
from ..models.config import DEFAULT_MULTI_TENANT_HOSTS
from ..models.rules import ExtractionRule

logger = logging.getLogger(__name__)

_HOST_PREFIX_RE = re.compile(r"^(www|m|amp)\.", re.IGNORECASE)


def domain_key(url: str, multi_tenant_hosts: Iterable[str] = DEFAULT_MULTI_TENANT_HOSTS) -> str:
    """
    Rule key for a page URL.

    The host is lowercased and a leading ``www.``, ``m.`` or ``amp.`` is
    dropped. On hosts that serve many independent blogs the first path
    segment is part of the key.

    Example:
        >>> domain_key("https://www.example.com/a/1.html")
        'example.com'
        >>> domain_key("http://blog.livedoor.jp/itsoku/archives/1.html")
        'blog.livedoor.jp/itsoku'
    """
    try:
        parts = urlsplit(url.strip())
        host = (parts.hostname or "").lower()
    except ValueError:
        return ""
    host = _HOST_PREFIX_RE.sub("", host)
    if host in multi_tenant_hosts:
        segments = [segment for segment in parts.path.split("/") if segment]
        if segments:
            return f"{host}/{segments[0]}"
    return host


@runtime_checkable
class RuleRepository(Protocol):
    """Protocol for rule sources."""

    def rule_for(self, domain_key: str) -> Optional[ExtractionRule]:
        """Rule for a domain key, or None when the site is unknown."""
        ...


class YamlRuleRepository:
    """
    In-memory rule table loaded from YAML.

    YAML format:
        jin115.com:
          main_selector: div.article_bodymore
          remove_selectors:
            - table
        blog.livedoor.jp/itsoku:
          main_selector: div.article-body-inner

    Example:
        rules = YamlRuleRepository.from_file(Path("sites.yaml"))
        rule = rules.rule_for(domain_key(url))
    """

    def __init__(self, rules: Mapping[str, ExtractionRule]) -> None:
        self._rules = {key.strip().lower(): rule for key, rule in rules.items()}

    @classmethod
    def from_yaml(cls, yaml_str: str, source: str = "<string>") -> YamlRuleRepository:
        """
        Load rules from a YAML string.

        Raises:
            RuleError: If the document is not a mapping or a rule is invalid
        """
        try:
            data = yaml.safe_load(yaml_str) or {}
        except yaml.YAMLError as e:
            raise RuleError(f"{source}: invalid YAML: {e}") from e
        if not isinstance(data, dict):
            raise RuleError(f"{source}: expected a mapping of domain key to rule")

        rules: dict[str, ExtractionRule] = {}
        for key, raw in data.items():
            try:
                rules[str(key)] = ExtractionRule.model_validate(raw)
            except ValidationError as e:
                raise RuleError(f"{source}: invalid rule for {key!r}: {e}") from e
        logger.debug(f"Loaded {len(rules)} rules from {source}")
        return cls(rules)

    @classmethod
    def from_file(cls, path: Path) -> YamlRuleRepository:
        """Load rules from a YAML file."""
        return cls.from_yaml(Path(path).read_text(encoding="utf-8"), source=str(path))

    @classmethod
    def bundled(cls) -> YamlRuleRepository:
        """Rules shipped with the package."""
        text = resources.files("article_normalizer.rules").joinpath("data/sites.yaml").read_text(encoding="utf-8")
        return cls.from_yaml(text, source="bundled sites.yaml")

    def rule_for(self, domain_key: str) -> Optional[ExtractionRule]:
        return self._rules.get(domain_key.strip().lower())

    def keys(self) -> list[str]:
        return sorted(self._rules)

    def to_yaml(self) -> str:
        """Serialize rules to a YAML string."""
        data = {
            key: rule.model_dump(mode="json", exclude_defaults=True)
            for key, rule in sorted(self._rules.items())
        }
        return yaml.dump(data, default_flow_style=False, allow_unicode=True, sort_keys=False)

    def __contains__(self, domain_key: object) -> bool:
        return isinstance(domain_key, str) and domain_key.strip().lower() in self._rules

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())
