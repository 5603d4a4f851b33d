#!/usr/bin/env python3
"""cdnkeeper command-line interface.

Classify CDN library URLs, audit pages for the libraries they pull from
third-party CDNs, and generate allow rules for content blockers.

Usage:
    python main.py classify <url> [--initiator <page-url>]
    python main.py audit <page-url> [<page-url> ...] [--output report.json]
    python main.py rules {uMatrix,uBlock,AdGuard}
    python main.py table
"""

import argparse
import logging
import sys

import requests
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel

from cdn_mappings import DEFAULT_MAPPINGS
from interceptor import Interceptor, RequestContext
from page_audit import PageAudit, audit_page, fetch_page_html
from redirect_builder import DEFAULT_RESOURCE_ROOT, RedirectTargetBuilder
from reporter import (
    print_audit_report,
    print_mapping_summary,
    print_outcome,
    write_excel_report,
    write_json_report,
)
from rule_generator import RULE_FORMATS, generate_rule_set
from settings import SettingsState, load_settings


def _build_arg_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser.

    Returns:
        A configured ArgumentParser instance.
    """
    parser = argparse.ArgumentParser(
        description=(
            "cdnkeeper: serve CDN-hosted libraries from a local bundle "
            "instead of the network."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  python main.py classify "
            "https://code.jquery.com/jquery-3.2.1.min.js\n"
            "  python main.py audit https://example.com/ "
            "--output report.json\n"
            "  python main.py rules uBlock\n"
        ),
    )
    parser.add_argument(
        "--settings",
        help="Path to a JSON settings file (default: built-in defaults).",
    )
    parser.add_argument(
        "--resource-root",
        default=DEFAULT_RESOURCE_ROOT,
        help=f"Root URL of the local resource server "
             f"(default: {DEFAULT_RESOURCE_ROOT}).",
    )
    parser.add_argument(
        "--block-missing",
        action="store_true",
        help="Cancel CDN requests that have no bundled counterpart.",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging.",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    classify = sub.add_parser("classify", help="Classify a single URL.")
    classify.add_argument("url", help="The requested resource URL.")
    classify.add_argument(
        "--initiator", "-i",
        help="URL of the page issuing the request.",
    )
    classify.add_argument(
        "--type", "-t",
        dest="resource_type",
        default="script",
        help="Request type: script, stylesheet, font or xmlhttprequest "
             "(default: script).",
    )

    audit = sub.add_parser("audit", help="Audit the resources of pages.")
    audit.add_argument("urls", nargs="+", help="Page URLs to audit.")
    audit.add_argument(
        "--output", "-o",
        help="Path for a JSON report.",
    )
    audit.add_argument(
        "--excel", "-e",
        help="Path for an Excel report.",
    )
    audit.add_argument(
        "--hide-passed",
        action="store_true",
        help="Hide resources that would load unchanged.",
    )

    rules = sub.add_parser("rules", help="Generate content-blocker rules.")
    rules.add_argument("format", choices=RULE_FORMATS)

    sub.add_parser("table", help="Show the CDN mapping table.")
    return parser


def _configure_logging(verbose: bool, console: Console) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _build_interceptor(args: argparse.Namespace) -> Interceptor:
    settings = SettingsState(load_settings(args.settings))
    if args.block_missing:
        settings.apply_changes({"block_missing": True})
    return Interceptor(
        builder=RedirectTargetBuilder(args.resource_root),
        settings=settings,
    )


def _run_audit(
    args: argparse.Namespace,
    interceptor: Interceptor,
    console: Console,
) -> int:
    audits: list[PageAudit] = []
    for url in args.urls:
        console.print(f"[cyan]Fetching:[/] {url}")
        try:
            html = fetch_page_html(url)
        except requests.RequestException as exc:
            console.print(f"  [red]Failed to fetch {url}: {exc}[/]")
            continue
        audits.append(audit_page(url, html, interceptor))

    if not audits:
        console.print("[red]No pages could be audited.[/]")
        return 1

    print_audit_report(audits, console=console, show_passed=not args.hide_passed)

    if args.output:
        write_json_report(audits, args.output)
        console.print(
            f"[green]✅ JSON report written to:[/] [bold]{args.output}[/]"
        )
    if args.excel:
        write_excel_report(audits, args.excel)
        console.print(
            f"[green]✅ Excel report written to:[/] [bold]{args.excel}[/]"
        )
    return 0


def main(argv=None) -> int:
    """Main entry point.

    Returns:
        Exit code (0 for success, 1 for errors).
    """
    parser = _build_arg_parser()
    args = parser.parse_args(argv)

    console = Console()
    _configure_logging(args.verbose, console)

    if args.command == "rules":
        console.print(
            generate_rule_set(args.format, DEFAULT_MAPPINGS.domains),
            markup=False,
            highlight=False,
        )
        return 0

    if args.command == "table":
        print_mapping_summary(DEFAULT_MAPPINGS, console=console)
        return 0

    interceptor = _build_interceptor(args)

    if args.command == "classify":
        context = RequestContext(tab_id="cli", resource_type=args.resource_type)
        outcome = interceptor.classify(args.url, args.initiator, context)
        print_outcome(args.url, outcome, console=console)
        return 0

    console.print(Panel(
        "[bold]Page Audit[/]\n"
        f"[dim]Pages:[/] {len(args.urls)}\n"
        f"[dim]Resource root:[/] {args.resource_root}",
        border_style="bold blue",
    ))
    return _run_audit(args, interceptor, console)


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
