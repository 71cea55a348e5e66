"""
Matplotlib chart renderer for the admin dashboard.

Turns the report component's chart specs into PNG bytes using the Agg
canvas (no display needed). With a ChartCachePort, output is keyed by a hash
of the spec and dimensions; the same data at the same size renders once.
"""

import hashlib
import json
import logging
from io import BytesIO

import matplotlib.figure
from matplotlib.axes import Axes
from matplotlib.backends.backend_agg import FigureCanvasAgg

from src.ports.chart_cache import ChartCachePort
from src.ports.renderer import ChartSpec

logger = logging.getLogger(__name__)

EMPTY_LABEL = "Aucune donnée"


def cache_key_for(spec: ChartSpec, width: int, height: int, dpi: int) -> str:
    payload = json.dumps([spec, width, height, dpi], sort_keys=True, default=str)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:32] + ".png"


def _draw(ax: Axes, spec: ChartSpec) -> None:
    chart_type = spec.get("type", "line")
    x = list(spec["data"]["x"])
    y = list(spec["data"]["y"])

    if not y or (chart_type == "pie" and sum(y) == 0):
        ax.axis("off")
        ax.text(0.5, 0.5, EMPTY_LABEL, ha="center", va="center")
        return

    if chart_type == "bar":
        ax.bar(x, y, color="#2e7d32")
        ax.tick_params(axis="x", labelrotation=30)
    elif chart_type == "pie":
        ax.pie(y, labels=x, autopct="%1.0f%%", startangle=90)
        ax.axis("equal")
        return
    else:
        ax.plot(x, y, marker="o", color="#1565c0")
        ax.set_ylim(bottom=0)

    if xlabel := spec.get("xlabel"):
        ax.set_xlabel(xlabel)
    if ylabel := spec.get("ylabel"):
        ax.set_ylabel(ylabel)


class MatplotlibRenderer:
    def __init__(self, cache: ChartCachePort | None = None):
        self.cache = cache

    def render_chart(
        self, spec: ChartSpec, width: int = 800, height: int = 600, dpi: int = 100
    ) -> bytes:
        """
        Render one chart spec ("line", "bar" or "pie") to PNG.

        An empty series renders a placeholder instead of failing.
        """
        key = cache_key_for(spec, width, height, dpi)
        if self.cache is not None:
            cached = self.cache.load(key)
            if cached is not None:
                return cached

        fig = matplotlib.figure.Figure(figsize=(width / dpi, height / dpi), dpi=dpi)
        FigureCanvasAgg(fig)
        ax = fig.add_subplot(111)
        _draw(ax, spec)
        if title := spec.get("title"):
            ax.set_title(title)
        fig.tight_layout()

        with BytesIO() as buf:
            fig.savefig(buf, format="png")
            png = buf.getvalue()

        if self.cache is not None:
            self.cache.store(key, png)
        logger.debug("Rendered %s chart %s (%d bytes)", spec.get("type"), key, len(png))
        return png
