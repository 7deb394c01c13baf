"""Command-line interface for article-normalizer."""

import argparse
import asyncio
import re
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.table import Table

from . import __version__
from .core.normalizer import ArticleNormalizer
from .errors import RuleError
from .logging_config import setup_logging
from .models.config import EngineConfig
from .models.results import ExtractionResult
from .rules import YamlRuleRepository


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog="article-normalizer",
        description="Extract the article body of web pages as clean, self-contained HTML",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Extract with the bundled site rules, HTML to stdout
  article-normalizer https://jin115.com/archives/52412345.html

  # Use your own rules and write to a file
  article-normalizer https://example.com/a/1.html --rules sites.yaml -o article.html

  # No rule for the site: clean the whole page, dropping extra elements
  article-normalizer https://example.com/a/1.html --generic --remove "header" --remove "footer"

  # Several pages, one file each
  article-normalizer URL1 URL2 URL3 --output-dir articles/

  # Validate a rule file
  article-normalizer --check-rules sites.yaml
        """,
    )

    parser.add_argument(
        "urls",
        nargs="*",
        metavar="URL",
        help="Page URL(s) to extract",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "--check-rules",
        type=Path,
        metavar="FILE",
        help="Validate a rule file, list its domain keys and exit",
    )

    # Rules and config
    rules_group = parser.add_argument_group("rules")
    rules_group.add_argument(
        "--rules",
        type=Path,
        metavar="FILE",
        help="YAML file of site rules (default: bundled rules)",
    )
    rules_group.add_argument(
        "--config",
        "-c",
        type=Path,
        metavar="FILE",
        help="YAML engine configuration",
    )
    rules_group.add_argument(
        "--generic",
        action="store_true",
        help="Ignore site rules and clean the whole page",
    )
    rules_group.add_argument(
        "--remove",
        action="append",
        default=[],
        metavar="SELECTOR",
        help="Extra CSS selector removed in generic mode (repeatable)",
    )

    # Network settings
    network_group = parser.add_argument_group("network settings")
    network_group.add_argument(
        "--timeout",
        type=float,
        default=None,
        metavar="SECONDS",
        help="Per-request timeout (default: 20)",
    )
    network_group.add_argument(
        "--proxy",
        type=str,
        metavar="URL",
        help="Proxy URL",
    )
    network_group.add_argument(
        "--max-concurrent",
        type=int,
        default=None,
        help="Articles extracted concurrently",
    )

    # Output control
    output_group = parser.add_argument_group("output control")
    output_group.add_argument(
        "--output",
        "-o",
        type=Path,
        metavar="FILE",
        help="Write the HTML of a single URL to FILE instead of stdout",
    )
    output_group.add_argument(
        "--output-dir",
        type=Path,
        metavar="DIR",
        help="Write one HTML file per URL into DIR",
    )
    output_group.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: from config, else INFO)",
    )
    output_group.add_argument(
        "--quiet",
        "-q",
        action="store_true",
        help="Suppress the summary",
    )

    return parser


def build_config(args: argparse.Namespace) -> EngineConfig:
    """Load the config file, then apply command-line overrides."""
    config = EngineConfig.from_yaml_file(args.config) if args.config else EngineConfig()

    data = config.model_dump()
    if args.rules:
        data["rules_file"] = args.rules
    if args.log_level:
        data["log_level"] = args.log_level
    if args.max_concurrent is not None:
        data["max_concurrent"] = args.max_concurrent
    if args.timeout is not None:
        data["network"]["timeout"] = args.timeout
    if args.proxy:
        data["network"]["proxy"] = args.proxy
    return EngineConfig.model_validate(data)


def _output_filename(result: ExtractionResult, index: int) -> str:
    key = re.sub(r"[^\w.-]+", "_", result.domain_key or "article")
    return f"{index:03d}_{key}.html"


def check_rules(path: Path, console: Console) -> int:
    """Validate a rule file and list its keys."""
    try:
        rules = YamlRuleRepository.from_file(path)
    except (OSError, RuleError) as e:
        console.print(f"[red]Invalid rules:[/red] {e}")
        return 1

    table = Table(title=f"{path} ({len(rules)} rules)")
    table.add_column("Domain key")
    table.add_column("Main selector")
    for key in rules.keys():
        rule = rules.rule_for(key)
        table.add_row(key, rule.locator_description if rule else "")
    console.print(table)
    return 0


def print_summary(results: list[ExtractionResult], console: Console) -> None:
    for result in results:
        if result.ok:
            pages = f" ({result.pages} pages)" if result.pages > 1 else ""
            console.print(f"[green]OK[/green] {result.url}{pages}")
        else:
            kind = result.error_kind.value if result.error_kind else "empty"
            console.print(f"[red]{kind}[/red] {result.url} - {result.error or 'no content'}")
        for warning in result.warnings:
            console.print(f"  [yellow]warning:[/yellow] {warning}")


def run_extraction(args: argparse.Namespace, console: Console) -> int:
    """Run the extraction with given arguments."""
    if not args.urls:
        console.print("[red]Error:[/red] Please provide a URL to extract")
        return 1
    if args.output and len(args.urls) > 1:
        console.print("[red]Error:[/red] --output takes a single URL; use --output-dir")
        return 1

    try:
        config = build_config(args)
    except Exception as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        return 1

    setup_logging(config.log_level, config.log_file)

    async def run() -> list[ExtractionResult]:
        async with ArticleNormalizer(config) as normalizer:
            return await normalizer.extract_many(
                args.urls,
                generic=args.generic,
                remove_selectors=args.remove,
            )

    try:
        results = asyncio.run(run())
    except (OSError, RuleError) as e:
        console.print(f"[red]Error:[/red] {e}")
        return 1

    if args.output_dir:
        args.output_dir.mkdir(parents=True, exist_ok=True)
        for index, result in enumerate(results, start=1):
            if result.ok:
                (args.output_dir / _output_filename(result, index)).write_text(result.html, encoding="utf-8")
    elif args.output:
        if results[0].ok:
            args.output.write_text(results[0].html, encoding="utf-8")
    else:
        for result in results:
            if result.ok:
                sys.stdout.write(result.html + "\n")

    if not args.quiet:
        print_summary(results, console)

    return 0 if all(result.ok for result in results) else 1


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)
    # Status goes to stderr so stdout carries only extracted HTML
    console = Console(stderr=True)

    if args.check_rules:
        return check_rules(args.check_rules, console)

    return run_extraction(args, console)


if __name__ == "__main__":
    sys.exit(main())
