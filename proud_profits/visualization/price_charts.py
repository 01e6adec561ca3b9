import io
import base64

# Configure matplotlib to use non-interactive Agg backend to avoid thread issues
import matplotlib
matplotlib.use('Agg')  # This must be before any other matplotlib imports
import matplotlib.pyplot as plt
from matplotlib.patches import Polygon, Rectangle

from proud_profits.visualization.chart_geometry import (
    ChartLayout,
    GRID_COLOR,
    LABEL_COLOR,
    MARKER_TEXT_COLOR,
)
from proud_profits.utils.logging_utils import get_component_logger

logger = get_component_logger("visualization.price_charts")


def _draw_layout(ax, layout: ChartLayout) -> None:
    area = layout.area

    # Grid and price labels
    for line in layout.grid:
        ax.plot([area.left, area.right], [line.y, line.y], color=GRID_COLOR, linewidth=1)
        ax.text(area.left - 5, line.y + 4, line.label, color=LABEL_COLOR,
                fontsize=9, ha='right', va='baseline')

    # Candles: wick first, then the body on top
    for shape in layout.shapes:
        ax.plot([shape.x, shape.x], [shape.high_y, shape.low_y], color=shape.color, linewidth=1)
        ax.add_patch(Rectangle(
            (shape.x - shape.width / 2, shape.body_top),
            shape.width,
            shape.body_height,
            facecolor=shape.color,
            edgecolor=shape.color,
        ))

    for marker in layout.markers:
        ax.add_patch(Polygon(marker.vertices, closed=True, facecolor=marker.color, edgecolor=marker.color))
        ax.text(marker.x, marker.label_y, marker.label, color=MARKER_TEXT_COLOR,
                fontsize=7, ha='center', va='baseline')

    if layout.live_line is not None:
        live = layout.live_line
        ax.plot([area.left, area.right], [live.y, live.y], color=live.color,
                linewidth=2, linestyle=(0, (5, 5)))
        ax.text(live.label_x, live.y + 4, live.label, color=live.color,
                fontsize=9, fontweight='bold', ha='left', va='baseline')

    if layout.title is not None:
        title = layout.title
        ax.text(title.x, title.y, title.text, color=title.color, fontsize=12,
                fontweight='bold', ha=title.align, va='baseline')

    if layout.updated is not None:
        updated = layout.updated
        ax.text(updated.x, updated.y, updated.text, color=updated.color, fontsize=8,
                ha=updated.align, va='baseline')


def render_chart_png(layout: ChartLayout, dpi: int = 100) -> bytes:
    """
    Render a chart layout to PNG bytes.

    The axes use the layout's pixel coordinates directly, with the y axis
    inverted so that y grows downwards like a canvas.

    Args:
        layout: Chart layout from build_chart_layout
        dpi: Output resolution; the figure is sized so that one layout
            pixel is one output pixel

    Returns:
        PNG image bytes
    """
    fig = plt.figure(figsize=(layout.width / dpi, layout.height / dpi), dpi=dpi)
    try:
        ax = fig.add_axes([0, 0, 1, 1])
        ax.set_xlim(0, layout.width)
        ax.set_ylim(layout.height, 0)
        ax.axis('off')
        fig.patch.set_facecolor('white')

        _draw_layout(ax, layout)

        buf = io.BytesIO()
        fig.savefig(buf, format='png', dpi=dpi)
        buf.seek(0)
        png = buf.read()
    finally:
        plt.close(fig)

    logger.debug(f"Rendered chart with {len(layout.shapes)} candles and {len(layout.markers)} signals")
    return png


def render_chart_base64(layout: ChartLayout, dpi: int = 100) -> str:
    """Render a chart layout to a base64-encoded PNG string."""
    return base64.b64encode(render_chart_png(layout, dpi=dpi)).decode('utf-8')


def save_chart(layout: ChartLayout, path: str, dpi: int = 100) -> str:
    with open(path, 'wb') as f:
        f.write(render_chart_png(layout, dpi=dpi))
    logger.info(f"Chart saved to {path}")
    return path
