"""Terminal rendering of aggregated reports.

Turns a Report into grouped, colorized lines:

    📊 Market CLI | 2026-10-19 09:30:00
    ──────────────────────────────────────────────────

    🇨🇳 A股
       贵州茅台: 1830.00 +1.25%
       平安银行: ❌

Rendering and printing are separate so the output can be asserted on
without a terminal. Colors come from ``click.style``.
"""

from collections.abc import Callable
from datetime import datetime

import click

from config.settings import GlobalConfig, get_config
from market_cli.models import FetchOutcome, Report, Watchlist

UNAVAILABLE_GLYPH = "❌"
RULE_WIDTH = 50

GROUP_STYLES: dict[str, tuple[str, str]] = {
    "stocks": ("🇨🇳", "blue"),
    "hkstocks": ("🇭🇰", "blue"),
    "gold": ("🥇", "yellow"),
    "crypto": ("🪙", "cyan"),
}
DEFAULT_GROUP_STYLE = ("•", "blue")


def format_change(percent_change: float) -> str:
    """Signed two-decimal percentage, green when >= 0 and red otherwise."""
    percent_change += 0.0  # -0.0 -> 0.0
    if percent_change >= 0:
        return click.style(f"+{percent_change:.2f}%", fg="green")
    return click.style(f"{percent_change:.2f}%", fg="red")


def format_outcome(outcome: FetchOutcome) -> str:
    """Price and change for a success, the failure glyph otherwise."""
    if not outcome.is_available:
        return UNAVAILABLE_GLYPH
    quote = outcome.quote
    return f"{quote.price:.2f} {format_change(quote.percent_change)}"


class TerminalPresenter:
    """Renders reports and watchlists for the terminal.

    Attributes:
        config: GlobalConfig instance (application name in the header).
        echo: Line printer, ``click.echo`` by default.
    """

    def __init__(
        self,
        config: GlobalConfig | None = None,
        echo: Callable[[str], None] = click.echo,
    ) -> None:
        self.config = config or get_config()
        self.echo = echo

    def _rule(self) -> str:
        return click.style("─" * RULE_WIDTH, fg="bright_black")

    def _group_header(self, key: str, display_name: str) -> str:
        glyph, color = GROUP_STYLES.get(key, DEFAULT_GROUP_STYLE)
        return click.style(f"{glyph} {display_name}", fg=color)

    def render_header(self, now: datetime) -> list[str]:
        title = click.style(f"📊 {self.config.app_name.replace('-', ' ')}", fg="cyan")
        separator = click.style("|", fg="bright_black")
        return ["", f"{title} {separator} {now:%Y-%m-%d %H:%M:%S}", self._rule(), ""]

    def render(self, report: Report) -> list[str]:
        """Render ``report`` as terminal lines, in report order.

        Args:
            report: Report produced by the aggregator.

        Returns:
            Lines including header, one block per group, and footer.
        """
        lines = self.render_header(report.generated_at)

        for section in report.sections:
            lines.append(self._group_header(section.group.key, section.group.display_name))
            for line in section.lines:
                lines.append(f"   {line.entry.display_name}: {format_outcome(line.outcome)}")
            lines.append("")

        separator = click.style("|", fg="bright_black")
        lines.append(self._rule())
        lines.append(
            f"{click.style('✅ Updated', fg='green')} {separator} {report.generated_at:%H:%M:%S}"
        )
        lines.append("")
        return lines

    def render_watchlist(self, watchlist: Watchlist) -> list[str]:
        """Render the configured symbols without fetching anything."""
        lines: list[str] = []
        for group in watchlist.groups:
            lines.append(f"{self._group_header(group.key, group.display_name)} ({group.key})")
            for entry in group.entries:
                lines.append(f"   {entry.symbol}  {entry.display_name}")
            lines.append("")
        return lines

    def display(self, report: Report) -> None:
        for line in self.render(report):
            self.echo(line)

    def display_watchlist(self, watchlist: Watchlist) -> None:
        for line in self.render_watchlist(watchlist):
            self.echo(line)
