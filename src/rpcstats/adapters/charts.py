"""Chart sink rendering aggregated series as PNG images.

Figures are built with the object-oriented matplotlib API (no pyplot state),
so rendering is safe from the background aggregation thread.
"""

import logging
import os
from datetime import datetime
from pathlib import Path

from matplotlib.dates import DateFormatter
from matplotlib.figure import Figure

from rpcstats.core.models import AggregatedSeries, Role, Summary

logger = logging.getLogger(__name__)

# 600x300 pixels
FIGURE_SIZE = (6, 3)
FIGURE_DPI = 100


def format_number(value: float) -> str:
    """Format with thousands separators and at most two decimals."""
    text = f"{value:,.2f}".rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


def summary_title(summary: Summary) -> str:
    """Render a summary as "max: … min: … avg: … sum: …".

    Unknown parts are left out.
    """
    parts = [f"max: {format_number(summary.max)}"]
    if summary.min is not None:
        parts.append(f"min: {format_number(summary.min)}")
    parts.append(f"avg: {format_number(summary.avg)}")
    if summary.sum is not None:
        parts.append(f"sum: {format_number(summary.sum)}")
    return " ".join(parts)


def display_service(service: str) -> str:
    """Return the simple name of a fully qualified service interface."""
    return service.rpartition(".")[2]


def display_date(day: str) -> str:
    """Return yyyyMMdd as yyyy-MM-dd, or unchanged if it does not parse."""
    try:
        return datetime.strptime(day, "%Y%m%d").strftime("%Y-%m-%d")
    except ValueError:
        return day


def _timeline(series: AggregatedSeries) -> list[tuple[datetime, tuple[float, float]]]:
    timeline = []
    for minute, values in series.points.items():
        try:
            moment = datetime.strptime(series.day + minute, "%Y%m%d%H%M")
        except ValueError:
            logger.warning("Skipping invalid minute %r in %s", minute, series.day)
            continue
        timeline.append((moment, values))
    return timeline


class MatplotlibChartSink:
    """ChartSinkPort implementation writing one PNG per series.

    Each chart plots the consumer and provider values over the day, titled
    with the series summary and subtitled with service, method and date.
    """

    def render(self, series: AggregatedSeries, path: str) -> None:
        """Render a series to a PNG file, creating parent directories."""
        timeline = _timeline(series)
        times = [moment for moment, _ in timeline]

        figure = Figure(figsize=FIGURE_SIZE, dpi=FIGURE_DPI, facecolor="white")
        ax = figure.add_subplot()
        ax.set_facecolor("white")
        for index, role in enumerate((Role.CONSUMER, Role.PROVIDER)):
            ax.plot(times, [values[index] for _, values in timeline], label=str(role))
        figure.suptitle(summary_title(series.summary), fontsize=10)
        ax.set_title(
            f"{display_service(series.service)}  {series.method}  "
            f"{display_date(series.day)}",
            fontsize=9,
        )
        ax.set_ylabel(series.unit)
        ax.xaxis.set_major_formatter(DateFormatter("%H:%M"))
        ax.grid(True, color="gray", linestyle="-", linewidth=0.5)
        ax.legend(loc="upper right", fontsize=8)

        logger.info("Writing chart %s", path)
        try:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
            figure.savefig(path, format="png", facecolor="white")
        except OSError as e:
            logger.warning("Failed to write chart %s: %s", path, e)

    def modified_time(self, path: str) -> float:
        """Return the PNG modification time, 0.0 when never rendered."""
        try:
            return os.stat(path).st_mtime
        except (FileNotFoundError, NotADirectoryError):
            return 0.0
