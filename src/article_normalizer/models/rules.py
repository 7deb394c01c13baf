"""Declarative per-site extraction rules."""

from typing import Any, Optional, Union

from pydantic import BaseModel, Field, field_validator


class CustomLocator(BaseModel):
    """
    Root locator that cannot be written as a CSS selector.

    ``name`` refers to a function registered in
    :mod:`article_normalizer.rules.locators`; ``params`` are passed to it as
    keyword arguments.

    YAML format:
        main_selector:
          custom: next_after_heading
          params:
            heading: h6
            text: Today's updates
            sibling: p
    """

    custom: str = Field(..., min_length=1, description="Registered locator name")
    params: dict[str, Any] = Field(default_factory=dict, description="Locator keyword arguments")

    model_config = {"extra": "forbid", "frozen": True}

    def describe(self) -> str:
        args = ", ".join(f"{key}={value!r}" for key, value in sorted(self.params.items()))
        return f"{self.custom}({args})"


RootLocator = Union[str, CustomLocator]


class ExtractionRule(BaseModel):
    """
    How to isolate and clean one site's article body.

    A rule is pure data: applying the same rule to the same HTML always
    produces the same structure. Optional transforms run only when their
    field is set.

    Example:
        rule = ExtractionRule(
            main_selector="div.article-body-inner",
            remove_selectors=["dl.article-tags", 'div[id*="ad"]'],
            allowed_tags=[],
            reduce_br=3,
        )

    YAML format:
        main_selector: div.article-body-inner
        remove_selectors:
          - dl.article-tags
        allowed_tags: []
        reduce_br: 3
    """

    main_selector: RootLocator = Field(..., description="CSS selector or custom locator for the article root")
    remove_selectors: tuple[str, ...] = Field(
        default_factory=tuple,
        description="Selectors removed inside the root, in order",
    )

    # Structural transforms, applied on the tree in a fixed order
    anchor_unwrap: Optional[str] = Field(
        None,
        description="Selector of wrappers (usually 'a') replaced by the media they hold",
    )
    lazy_src_attr: Optional[str] = Field(
        None,
        description="Lazy-loading attribute promoted to src on img elements",
    )
    iframe_src_fix: bool = Field(False, description="Prefix protocol-relative iframe src with https:")
    simplify_video: Optional[str] = Field(
        None,
        description="Selector of video containers reduced to a bare <video> from their mp4 <source>",
    )
    remove_empty_tag: Optional[str] = Field(
        None,
        description="Selector whose matches are removed when they hold no text and no media",
    )

    # Sanitizer
    allowed_tags: Optional[tuple[str, ...]] = Field(
        None,
        description="Extra tags the sanitizer keeps (None = iframe, script, noscript)",
    )

    # String passes on the serialized output
    reduce_br: Optional[int] = Field(None, ge=1, description="Collapse runs of this many <br> into one")
    remove_affiliate_id: bool = Field(False, description="Strip affi_id=.../ path segments")
    fix_base64_img: bool = Field(False, description="Add inline size and alt to data:image images")
    imgur_to_img: bool = Field(False, description="Convert imgur embeds into plain images")
    twitter_embed: bool = Field(False, description="Append the tweet widget loader when tweets are embedded")
    remove_tag_as_string: Optional[str] = Field(
        None,
        description="Tag name removed with its content by regex on the output",
    )
    to_full_url: Optional[str] = Field(None, description="Base URL for relative src attributes")
    remove_string: Optional[str] = Field(None, description="Regex removed from the output")
    pretty_print: bool = Field(False, description="Indent the final fragment")

    model_config = {"extra": "forbid", "frozen": True}

    @field_validator("allowed_tags")
    @classmethod
    def _lowercase_tags(cls, v: Optional[tuple[str, ...]]) -> Optional[tuple[str, ...]]:
        if v is None:
            return None
        return tuple(tag.strip().lower() for tag in v if tag.strip())

    @property
    def locator_description(self) -> str:
        """Human-readable form of the main selector, for log messages."""
        if isinstance(self.main_selector, CustomLocator):
            return self.main_selector.describe()
        return self.main_selector
