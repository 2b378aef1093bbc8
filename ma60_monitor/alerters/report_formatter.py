"""
Markdown rendering of the daily crossing report.

The document always has the same four sections in the same order; an
empty section shows a single placeholder bullet.
"""

from datetime import date
from typing import List

from ma60_monitor import config
from ma60_monitor.scanning.analyzer import CrossingReport


def format_section(title: str, items: List[str]) -> str:
    lines = [f"**{title}**", ""]
    if items:
        lines.extend(f"- {item}" for item in items)
    else:
        lines.append(f"- {config.EMPTY_SECTION_PLACEHOLDER}")
    lines.append("")
    return "\n".join(lines) + "\n"


def format_daily_report(report: CrossingReport, report_date: date) -> str:
    """
    Render a CrossingReport as a markdown document.

    Args:
        report: Four-section report from the analyzer
        report_date: Date shown in the header

    Returns:
        Markdown text
    """
    parts = [f"### MA60 Crossing Daily Report ({report_date.isoformat()})\n\n"]
    for attr, title in config.REPORT_SECTIONS.items():
        parts.append(format_section(title, getattr(report, attr)))
    return "".join(parts)
