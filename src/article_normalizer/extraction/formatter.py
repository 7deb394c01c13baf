"""String passes applied to the serialized, sanitized fragment."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urljoin

from ..errors import RuleError
from ..models.rules import ExtractionRule
from .dom import HTML_FORMATTER, parse_html

logger = logging.getLogger(__name__)

AFFILIATE_ID_RE = re.compile(r"affi_id=[^/]+/")
BASE64_IMG_RE = re.compile(r'(<img\s+[^>]*?src="data:image/[^"]+"[^>]*?)(\s*/?>)', re.IGNORECASE)
BASE64_IMG_ATTRS = ' style="width: 32px; height: 32px;" alt="emoji"'
SRC_ATTR_RE = re.compile(r"(\ssrc=)([\"'])(.*?)\2", re.IGNORECASE | re.DOTALL)
SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.\-]*:", re.IGNORECASE)
TWEET_BLOCK_RE = re.compile(r"<blockquote[^>]+twitter-tweet", re.IGNORECASE)
TWEET_LOADER = '<script async src="https://platform.twitter.com/widgets.js"></script>'
TWEET_LOADER_MARKER = "platform.twitter.com/widgets.js"
DUPLICATE_BLANK_LINES_RE = re.compile(r"\n\s*\n+")
# Kept as captured separators by re.split, so odd parts are pre blocks
PRE_BLOCK_RE = re.compile(r"(<pre\b[^>]*>.*?</pre\s*>)", re.IGNORECASE | re.DOTALL)


@dataclass(frozen=True)
class FormatOptions:
    """Which output passes run. Unset options skip their pass."""

    reduce_br: Optional[int] = None
    remove_affiliate_id: bool = False
    fix_base64_img: bool = False
    to_full_url: Optional[str] = None
    remove_tag_as_string: Optional[str] = None
    remove_string: Optional[str] = None
    twitter_embed: bool = False
    pretty_print: bool = False

    @classmethod
    def from_rule(cls, rule: ExtractionRule) -> "FormatOptions":
        return cls(
            reduce_br=rule.reduce_br,
            remove_affiliate_id=rule.remove_affiliate_id,
            fix_base64_img=rule.fix_base64_img,
            to_full_url=rule.to_full_url,
            remove_tag_as_string=rule.remove_tag_as_string,
            remove_string=rule.remove_string,
            twitter_embed=rule.twitter_embed,
            pretty_print=rule.pretty_print,
        )


def collapse_br_runs(html: str, threshold: int) -> str:
    """Replace every run of at least ``threshold`` ``<br>`` tags by one."""
    pattern = re.compile(r"(?:<br\s*/?>\s*){%d,}" % threshold, re.IGNORECASE)
    return pattern.sub("<br>", html)


def absolutize_sources(html: str, base_url: str) -> str:
    """
    Rewrite relative ``src`` attribute values against ``base_url``.

    Values with a scheme (``http:``, ``https:``, ``data:``...) are left alone.
    Whitespace inside a value is dropped first.
    """

    def _replace(match: re.Match) -> str:
        value = re.sub(r"\s+", "", match.group(3))
        if not value or SCHEME_RE.match(value):
            return match.group(0)
        return f"{match.group(1)}{match.group(2)}{urljoin(base_url, value)}{match.group(2)}"

    return SRC_ATTR_RE.sub(_replace, html)


def remove_tag_blocks(html: str, tag: str) -> str:
    """Remove ``<tag ...>...</tag>`` blocks, content included."""
    name = re.escape(tag.strip())
    pattern = re.compile(rf"<{name}\b[\s\S]*?</{name}\s*>", re.IGNORECASE)
    return pattern.sub("", html)


def remove_pattern(html: str, pattern: str) -> str:
    """
    Remove every match of a rule-supplied regex (dot matches newline, any case).

    Raises:
        RuleError: If the pattern does not compile
    """
    try:
        regex = re.compile(pattern, re.DOTALL | re.IGNORECASE)
    except re.error as e:
        raise RuleError(f"Invalid remove_string pattern {pattern!r}: {e}") from e
    return regex.sub("", html)


def append_tweet_loader(html: str) -> str:
    """Append the tweet widget loader once when the fragment embeds a tweet."""
    if TWEET_BLOCK_RE.search(html) and TWEET_LOADER_MARKER not in html:
        return f"{html}\n{TWEET_LOADER}"
    return html


def remove_duplicate_blank_lines(html: str) -> str:
    """Collapse blank-line runs outside of <pre> blocks."""
    parts = PRE_BLOCK_RE.split(html)
    return "".join(part if index % 2 else DUPLICATE_BLANK_LINES_RE.sub("\n", part) for index, part in enumerate(parts))


def pretty_print(html: str) -> str:
    """Indent the fragment by two spaces per level."""
    return parse_html(html).prettify(formatter=HTML_FORMATTER)


def format_output(html: str, options: FormatOptions) -> str:
    """
    Run the output passes in their fixed order.

    1. ``<br>`` run collapsing
    2. affiliate id stripping
    3. inline size and alt on ``data:image`` images
    4. relative ``src`` absolutization
    5. tag removal, pattern removal, tweet loader
    6. pretty printing

    Duplicate blank lines outside <pre> are always removed and the result
    trimmed.

    Raises:
        RuleError: If ``remove_string`` is not a valid regex
    """
    output = html
    if options.reduce_br:
        output = collapse_br_runs(output, options.reduce_br)
    if options.remove_affiliate_id:
        output = AFFILIATE_ID_RE.sub("", output)
    if options.fix_base64_img:
        output = BASE64_IMG_RE.sub(lambda m: f"{m.group(1)}{BASE64_IMG_ATTRS}{m.group(2)}", output)
    if options.to_full_url:
        output = absolutize_sources(output, options.to_full_url)
    if options.remove_tag_as_string:
        output = remove_tag_blocks(output, options.remove_tag_as_string)
    if options.remove_string:
        output = remove_pattern(output, options.remove_string)
    if options.twitter_embed:
        output = append_tweet_loader(output)
    if options.pretty_print:
        output = pretty_print(output)
    return remove_duplicate_blank_lines(output).strip()
