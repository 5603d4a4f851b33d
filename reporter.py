"""Report output for classifications and page audits.

Renders rich terminal tables and writes JSON and Excel reports.
"""

import json
import os
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from cdn_mappings import MappingTable, determine_cdn_name
from helpers import format_version
from interceptor import Action, Outcome
from page_audit import PageAudit

# Display style per classification action.
ACTION_STYLES = {
    Action.REDIRECT.value: ("↪ Redirect", "bold green"),
    Action.CANCEL.value: ("✖ Cancel", "bold red"),
    Action.MISSING.value: ("? Missing", "yellow"),
    Action.PASS_THROUGH.value: ("→ Pass", "dim"),
}


def _action_text(action: str) -> Text:
    label, style = ACTION_STYLES.get(action, (action, ""))
    return Text(label, style=style)


def _missing_fallback(outcome: Outcome) -> str:
    if outcome.cancel:
        return "cancelled (block missing)"
    if outcome.redirect_url:
        return "upgraded to HTTPS"
    return "loaded from the original host"


def print_outcome(
    url: str,
    outcome: Outcome,
    console: Optional[Console] = None,
) -> None:
    """Print the classification of a single URL as a panel.

    Args:
        url: The classified request URL.
        outcome: Its Outcome.
        console: Optional rich Console.
    """
    if console is None:
        console = Console()

    lines = [f"[dim]URL:[/] {url}"]
    if outcome.action is Action.REDIRECT:
        lines.append(
            f"[dim]Resource:[/] {outcome.resource.name} "
            f"{format_version(outcome.pin.version)}"
        )
        lines.append(f"[dim]MIME type:[/] {outcome.resource.mime_type}")
        lines.append(f"[dim]Target:[/] {outcome.redirect_url}")
    elif outcome.action is Action.MISSING:
        lines.append(f"[dim]Reason:[/] {outcome.reason.value}")
        lines.append(f"[dim]Fallback:[/] {_missing_fallback(outcome)}")
        if outcome.redirect_url:
            lines.append(f"[dim]Target:[/] {outcome.redirect_url}")

    label, style = ACTION_STYLES[outcome.action.value]
    console.print()
    console.print(Panel(
        "\n".join(lines),
        title=f"[{style}]{label}[/]",
        border_style=style.replace("bold ", ""),
    ))


def print_audit_report(
    audits: list[PageAudit],
    console: Optional[Console] = None,
    show_passed: bool = True,
) -> None:
    """Print one findings table per audited page.

    Args:
        audits: Page audits to print.
        console: Optional rich Console.
        show_passed: Whether to list pass-through resources.
    """
    if console is None:
        console = Console()

    for audit in audits:
        findings = [
            f for f in audit.findings
            if show_passed or f.action != Action.PASS_THROUGH.value
        ]

        table = Table(
            title=f"📦 {audit.url}",
            show_header=True,
            header_style="bold magenta",
            show_lines=True,
            expand=True,
        )
        table.add_column("Resource URL", style="dim", max_width=60)
        table.add_column("Type", max_width=10)
        table.add_column("Action", justify="center", max_width=12)
        table.add_column("Library", style="cyan", max_width=25)
        table.add_column("Bundle", justify="right", max_width=12)
        table.add_column("Reason", max_width=16)

        for finding in findings:
            table.add_row(
                finding.url,
                finding.resource_type,
                _action_text(finding.action),
                finding.resource_name or "",
                format_version(finding.version) if finding.version else "",
                finding.reason or "",
            )

        console.print()
        console.print(table)
        console.print(
            f"[green]{audit.injection_count} served locally[/], "
            f"[yellow]{audit.missing_count} missing[/], "
            f"[red]{audit.count(Action.CANCEL)} cancelled[/]"
        )


def print_mapping_summary(
    mappings: MappingTable,
    console: Optional[Console] = None,
) -> None:
    """Print the registered CDN hosts and their rule counts."""
    if console is None:
        console = Console()

    table = Table(
        title="🗺️  CDN Mapping Table",
        show_header=True,
        header_style="bold magenta",
    )
    table.add_column("Domain", style="cyan", no_wrap=True)
    table.add_column("CDN")
    table.add_column("Rules", justify="right", style="bold")
    table.add_column("Libraries", style="dim")

    for domain in mappings.domains:
        entries = mappings.entries_for(domain)
        libraries = sorted({e.resource_id for e in entries})
        table.add_row(
            domain,
            determine_cdn_name(domain),
            str(len(entries)),
            ", ".join(libraries),
        )

    console.print()
    console.print(table)


def _build_report(audits: list[PageAudit]) -> dict:
    return {
        "summary": {
            "total_pages_audited": len(audits),
            "total_resources": sum(len(a.findings) for a in audits),
            "redirected": sum(a.count(Action.REDIRECT) for a in audits),
            "missing": sum(a.missing_count for a in audits),
            "cancelled": sum(a.count(Action.CANCEL) for a in audits),
        },
        "pages": [a.to_dict() for a in audits],
    }


def write_json_report(audits: list[PageAudit], output_path: str) -> None:
    """Write the audit results as a JSON file.

    Args:
        audits: Page audits to include.
        output_path: Path for the JSON output file.
    """
    report = _build_report(audits)

    os.makedirs(os.path.dirname(output_path) or ".", exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as fh:
        json.dump(report, fh, indent=2, ensure_ascii=False)


def write_excel_report(audits: list[PageAudit], output_path: str) -> None:
    """Write the audit results as an Excel file.

    One sheet lists every resource of every page; a second one
    summarizes each page.

    Args:
        audits: Page audits to include.
        output_path: Path for the Excel output file.
    """
    import pandas as pd
    from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE

    def _clean_str(val):
        if isinstance(val, str):
            return ILLEGAL_CHARACTERS_RE.sub("", val)
        return val

    resource_rows = []
    page_rows = []

    for audit in audits:
        page = audit.to_dict()
        page_rows.append({
            "Page URL": _clean_str(page["url"]),
            "Resources": page["resources_found"],
            "Redirected": page["redirected"],
            "Missing": page["missing"],
            "Cancelled": page["cancelled"],
        })
        for finding in page["findings"]:
            resource_rows.append({
                "Page URL": _clean_str(page["url"]),
                "Resource URL": _clean_str(finding["url"]),
                "Type": finding["resource_type"],
                "Action": finding["action"],
                "Reason": finding["reason"],
                "Library": _clean_str(finding["resource_name"]),
                "Bundle": finding["version"],
                "MIME Type": finding["mime_type"],
                "Target": _clean_str(finding["target"]),
            })

    df_resources = pd.DataFrame(resource_rows)
    df_pages = pd.DataFrame(page_rows)

    os.makedirs(os.path.dirname(output_path) or ".", exist_ok=True)
    with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
        df_resources.to_excel(writer, sheet_name="Resources", index=False)
        df_pages.to_excel(writer, sheet_name="Pages", index=False)

        from openpyxl.styles import Font, PatternFill
        from openpyxl.utils import get_column_letter

        header_font = Font(bold=True, color="FFFFFF")
        header_fill = PatternFill(
            start_color="366092", end_color="366092", fill_type="solid"
        )

        for sheet_name in writer.sheets:
            worksheet = writer.sheets[sheet_name]

            # Freeze the header row and add a filter dropdown to it
            worksheet.freeze_panes = "A2"
            worksheet.auto_filter.ref = worksheet.dimensions

            for col_idx, column in enumerate(worksheet.columns, 1):
                col_letter = get_column_letter(col_idx)
                header_cell = column[0]
                header_cell.font = header_font
                header_cell.fill = header_fill

                max_length = max(
                    (len(str(cell.value)) for cell in column
                     if cell.value is not None),
                    default=0,
                )
                # Keep columns readable: between 10 and 60 characters
                worksheet.column_dimensions[col_letter].width = max(
                    min(max_length + 2, 60), 10
                )
