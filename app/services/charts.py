from __future__ import annotations

import io
from datetime import datetime

import matplotlib
matplotlib.use("Agg")  # non-interactive backend
import matplotlib.pyplot as plt
import matplotlib.dates as mdates

from ..pipeline.dividends import DividendSummary
from ..pipeline.series import ChartMode, ChartView
from ..utils import local_tz

PALETTE = ["#a6e3a1", "#89b4fa", "#f9e2af", "#cba6f7", "#94e2d5",
           "#fab387", "#f38ba8", "#74c7ec", "#b4befe", "#f5c2e7"]

MODE_TITLES = {
    ChartMode.TOTAL: "Total portfolio value",
    ChartMode.NORMALIZED: "Normalized (start = 100)",
    ChartMode.OVERLAY: "Prices",
}


def _fig_to_bytes(fig) -> bytes:
    buf = io.BytesIO()
    fig.savefig(buf, format="png", dpi=120, bbox_inches="tight", facecolor="#1e1e2e")
    buf.seek(0)
    plt.close(fig)
    return buf.read()


def _apply_dark_theme(ax):
    """Apply a dark theme to axes."""
    ax.set_facecolor("#1e1e2e")
    ax.tick_params(colors="#cdd6f4")
    ax.xaxis.label.set_color("#cdd6f4")
    ax.yaxis.label.set_color("#cdd6f4")
    ax.title.set_color("#cdd6f4")
    for spine in ax.spines.values():
        spine.set_color("#45475a")
    ax.grid(True, alpha=0.2, color="#45475a")


def render_series_chart(view: ChartView, currency: str = "EUR", tz_name: str | None = None) -> bytes | None:
    """Line chart of a derived view; None when the view lacks history."""
    if view.insufficient_history or not view.series:
        return None
    tzinfo = local_tz(tz_name)

    fig, ax = plt.subplots(figsize=(10, 5))
    fig.patch.set_facecolor("#1e1e2e")
    _apply_dark_theme(ax)

    for i, s in enumerate(view.series):
        xs = [datetime.fromtimestamp(t / 1000, tzinfo) for t, _ in s.data]
        ys = [v for _, v in s.data]
        ax.plot(xs, ys, color=PALETTE[i % len(PALETTE)], linewidth=2, label=s.name)

    if view.mode is ChartMode.TOTAL:
        ax.set_ylabel(f"Value ({currency})")
        ax.yaxis.set_major_formatter(plt.FuncFormatter(lambda x, p: f"{x:,.0f}"))
    elif view.mode is ChartMode.NORMALIZED:
        ax.axhline(100, color="#6c7086", linewidth=1, linestyle="--")
        ax.set_ylabel("Index")
    else:
        ax.set_ylabel(f"Price ({currency})")

    if len(view.series) > 1:
        ax.legend(facecolor="#313244", edgecolor="#45475a", labelcolor="#cdd6f4", loc="upper left")
    ax.set_title(f"{MODE_TITLES[view.mode]} ({view.range.value})", fontsize=14, fontweight="bold")
    ax.xaxis.set_major_formatter(mdates.DateFormatter("%b %d", tz=tzinfo))
    fig.autofmt_xdate(rotation=45)

    return _fig_to_bytes(fig)


def render_dividend_chart(summary: DividendSummary, currency: str = "EUR") -> bytes:
    """Grouped bars: actual cash of the last 12 months next to the 12-month forecast."""
    fig, ax = plt.subplots(figsize=(10, 5))
    fig.patch.set_facecolor("#1e1e2e")
    _apply_dark_theme(ax)

    n = len(summary.actual)
    width = 0.4
    xs = list(range(n))
    ax.bar([x - width / 2 for x in xs], [b.amount for b in summary.actual],
           width=width, color="#a6e3a1", edgecolor="#45475a", label="Actual (last 12 months)")
    ax.bar([x + width / 2 for x in xs], [b.amount for b in summary.forecast],
           width=width, color="#89b4fa", edgecolor="#45475a", label="Expected (next 12 months)")

    labels = [f"{a.month}\n{f.month}" for a, f in zip(summary.actual, summary.forecast)]
    ax.set_xticks(xs)
    ax.set_xticklabels(labels, fontsize=7)
    ax.set_ylabel(f"Amount ({currency})")
    ax.yaxis.set_major_formatter(plt.FuncFormatter(lambda x, p: f"{x:,.2f}"))
    ax.legend(facecolor="#313244", edgecolor="#45475a", labelcolor="#cdd6f4", loc="upper left")
    ax.set_title(
        f"Dividends: {summary.total_actual:,.2f} received, {summary.total_forecast:,.2f} expected",
        fontsize=14, fontweight="bold",
    )

    return _fig_to_bytes(fig)
