"""
Nord-themed console output: banner, leveled messages and run reports.
"""

from typing import List, Optional

import pyfiglet
from rich.align import Align
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

from ubuntu_dev_setup import APP_NAME, VERSION


# ----------------------------------------------------------------
# Nord-Themed Colors and Theme Setup
# ----------------------------------------------------------------
class NordColors:
    POLAR_NIGHT_3: str = "#434C5E"
    POLAR_NIGHT_4: str = "#4C566A"
    SNOW_STORM_1: str = "#D8DEE9"
    SNOW_STORM_2: str = "#E5E9F0"
    FROST_1: str = "#8FBCBB"
    FROST_2: str = "#88C0D0"
    FROST_3: str = "#81A1C1"
    FROST_4: str = "#5E81AC"
    RED: str = "#BF616A"
    YELLOW: str = "#EBCB8B"
    GREEN: str = "#A3BE8C"


nord_theme = Theme(
    {
        "banner": f"bold {NordColors.FROST_2}",
        "header": f"bold {NordColors.FROST_2}",
        "info": NordColors.FROST_2,
        "warning": NordColors.YELLOW,
        "error": NordColors.RED,
        "debug": NordColors.POLAR_NIGHT_3,
        "success": NordColors.GREEN,
    }
)

console = Console(theme=nord_theme)

# Outcome value -> theme style used in the status report.
OUTCOME_STYLES = {
    "pending": "debug",
    "running": "warning",
    "success": "success",
    "skipped_by_toggle": "debug",
    "skipped_by_precondition": "info",
    "failed_recoverable": "warning",
    "failed_fatal": "error",
}


# ----------------------------------------------------------------
# Banner
# ----------------------------------------------------------------
def create_header(title: str) -> Panel:
    """
    Render title as pyfiglet ASCII art inside a Nord gradient panel.

    The banner is assembled line by line into a Text object so that
    characters in the art are never parsed as rich markup.
    """
    fonts = ["slant", "small", "mini", "smslant"]
    ascii_art = ""
    for font in fonts:
        try:
            ascii_art = pyfiglet.Figlet(font=font, width=80).renderText(title)
        except pyfiglet.FontNotFound:
            continue
        if ascii_art.strip():
            break
    ascii_lines = [line for line in ascii_art.splitlines() if line.strip()] or [title]
    colors = [
        NordColors.FROST_1,
        NordColors.FROST_2,
        NordColors.FROST_3,
        NordColors.FROST_4,
    ]
    combined_text = Text()
    for i, line in enumerate(ascii_lines):
        combined_text.append(line, style=f"bold {colors[i % len(colors)]}")
        if i < len(ascii_lines) - 1:
            combined_text.append("\n")
    border = Text("━" * 80, style=NordColors.FROST_3)
    return Panel(
        Align.center(Text.assemble(border, "\n", combined_text, "\n", border)),
        border_style=NordColors.FROST_1,
        padding=(1, 2),
        title=Text(f"{APP_NAME} v{VERSION}", style=f"bold {NordColors.SNOW_STORM_2}"),
        title_align="right",
        subtitle=Text("Unattended Mode", style=f"bold {NordColors.SNOW_STORM_1}"),
        subtitle_align="center",
    )


# ----------------------------------------------------------------
# Simple Message Printing Helpers
# ----------------------------------------------------------------
def print_message(
    text: str, style: str = NordColors.FROST_2, prefix: str = "•"
) -> None:
    console.print(f"[{style}]{prefix} {escape(text)}[/{style}]")


def print_step(message: str) -> None:
    print_message(message, NordColors.FROST_2, "→")


def print_success(message: str) -> None:
    print_message(message, NordColors.GREEN, "✓")


def print_warning(message: str) -> None:
    print_message(message, NordColors.YELLOW, "⚠")


def print_error(message: str) -> None:
    print_message(message, NordColors.RED, "✗")


def display_panel(
    message: str, style: str = NordColors.FROST_2, title: Optional[str] = None
) -> None:
    panel = Panel(
        Text(message, style=style),
        border_style=style,
        padding=(1, 2),
        title=f"[bold {style}]{title}[/bold {style}]" if title else None,
    )
    console.print(panel)


# ----------------------------------------------------------------
# Run Reports
# ----------------------------------------------------------------
def print_status_report(report) -> None:
    """Print one row per declared step with its terminal (or pending) state."""
    table = Table(title="Setup Status Report", style="banner")
    table.add_column("Step", style="header")
    table.add_column("Status", style="info")
    table.add_column("Message", style="info")
    results = {result.step_id: result for result in report.results}
    for step_id, state in report.states.items():
        style = OUTCOME_STYLES.get(state.value, "info")
        result = results.get(step_id)
        table.add_row(
            step_id.replace("_", " ").title(),
            f"[{style}]{state.value.replace('_', ' ').upper()}[/{style}]",
            Text(result.message if result else ""),
        )
    console.print(
        Panel(
            table,
            title=f"[banner]{APP_NAME} Status[/banner]",
            border_style=NordColors.FROST_3,
        )
    )


def print_follow_ups(follow_ups: List[str], elapsed: float, aborted: bool) -> None:
    hours, remainder = divmod(elapsed, 3600)
    minutes, seconds = divmod(remainder, 60)
    headline = (
        "Provisioning aborted after a fatal step failure."
        if aborted
        else "All done!"
    )
    lines = [headline, "", f"Total runtime: {int(hours)}h {int(minutes)}m {int(seconds)}s"]
    if follow_ups:
        lines.append("")
        lines.extend(f"- {item}" for item in follow_ups)
    display_panel(
        "\n".join(lines),
        style=NordColors.RED if aborted else NordColors.GREEN,
        title="Summary",
    )
