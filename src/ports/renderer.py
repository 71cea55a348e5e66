from typing import Literal, NotRequired, Protocol, TypedDict

ChartType = Literal["line", "bar", "pie"]


class ChartData(TypedDict):
    x: list[str]
    y: list[int | float]


class ChartSpec(TypedDict):
    """Chart description shared by the dashboard JSON and the PNG renderer."""

    type: ChartType
    title: str
    data: ChartData
    xlabel: NotRequired[str]
    ylabel: NotRequired[str]


class ChartRendererPort(Protocol):
    def render_chart(
        self, spec: ChartSpec, width: int = 800, height: int = 600, dpi: int = 100
    ) -> bytes:
        """Render a chart spec to PNG bytes."""
        ...
