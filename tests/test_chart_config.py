"""
Unit tests for the Plotly layout presets in kitracker.core.chart_config.
"""

import pytest
import plotly.graph_objects as go

from kitracker import config as cfg
from kitracker.core.chart_config import (
    apply_bar_layout,
    apply_occupancy_axes,
    apply_time_series_layout,
    create_standard_annotation,
    get_default_margins,
    get_plot_area,
    get_series_colors,
)


class TestDefaultMargins:
    """Test margins and the derived plot area."""

    def test_default_margins(self):
        """Test full-width charts get the wide margins."""
        assert get_default_margins() == {"l": 50, "r": 20, "t": 40, "b": 40}

    def test_compact_margins(self):
        """Test grid charts get the compact margins."""
        assert get_default_margins(compact=True) == {"l": 40, "r": 10, "t": 30, "b": 30}

    def test_plot_area_matches_margins(self):
        """Test the overlay plot area is the chart minus its margins."""
        area = get_plot_area()
        assert area.left == 50
        assert area.right == cfg.CHART_WIDTH - 20
        assert area.bottom == cfg.CHART_HEIGHT - 40


class TestSeriesColors:
    """Test the lead and boulder palette."""

    def test_series_keys(self):
        """Test both series have line and fill colors."""
        colors = get_series_colors()
        for name in ("lead", "boulder"):
            assert f"{name}_line" in colors
            assert f"{name}_fill" in colors
        assert "cursor_line" in colors

    def test_color_values(self):
        """Test every color is a hex or rgba value."""
        for color_value in get_series_colors().values():
            assert color_value.startswith("#") or color_value.startswith("rgba")


class TestTimeSeriesLayout:
    """Test the shared time series layout."""

    def test_default_layout(self):
        """Test the defaults stretch to the container with unified hover."""
        result_fig = apply_time_series_layout(go.Figure())

        assert isinstance(result_fig, go.Figure)
        assert result_fig.layout.height == cfg.CHART_HEIGHT
        assert result_fig.layout.showlegend is False
        assert result_fig.layout.hovermode == "x unified"
        assert result_fig.layout.width is None

    def test_custom_parameters(self):
        """Test size, legend, title and compact margins are applied."""
        result_fig = apply_time_series_layout(
            go.Figure(), height=300, width=640, showlegend=True, title="Today", compact=True
        )

        assert result_fig.layout.height == 300
        assert result_fig.layout.width == 640
        assert result_fig.layout.showlegend is True
        assert result_fig.layout.title.text == "Today"
        assert result_fig.layout.margin.l == 40


class TestOccupancyAxes:
    """Test the percentage axes."""

    def test_percentage_axis(self):
        """Test the y-axis is fixed to 0-100%."""
        fig = apply_occupancy_axes(go.Figure())

        assert tuple(fig.layout.yaxis.range) == (0, 100)
        assert fig.layout.yaxis.ticksuffix == "%"

    def test_time_range(self):
        """Test an x range sets clock ticks."""
        fig = apply_occupancy_axes(go.Figure(), x_range=["2024-06-12 09:00", "2024-06-12 22:00"])

        assert tuple(fig.layout.xaxis.range) == ("2024-06-12 09:00", "2024-06-12 22:00")
        assert fig.layout.xaxis.tickformat == "%H:%M"

    def test_category_axis(self):
        """Test the x-axis type can be set."""
        fig = apply_occupancy_axes(go.Figure(), type_x="category")
        assert fig.layout.xaxis.type == "category"


class TestStandardAnnotation:
    """Test annotation presets."""

    def test_default_annotation(self):
        """Test the default preset is an unboxed top-right paper annotation."""
        annotation = create_standard_annotation("Test Text")

        assert annotation["text"] == "Test Text"
        assert annotation["xref"] == "paper"
        assert annotation["showarrow"] is False
        assert annotation["x"] == 0.98
        assert annotation["xanchor"] == "right"

    def test_position_presets(self):
        """Test the top_left and center presets."""
        assert create_standard_annotation("Test", position="top_left")["x"] == 0.02
        center = create_standard_annotation("Test", position="center")
        assert (center["x"], center["y"]) == (0.5, 0.5)

    def test_unknown_position_falls_back(self):
        """Test an unknown preset name lands top right."""
        assert create_standard_annotation("Test", position="nowhere")["x"] == 0.98

    def test_custom_parameters(self):
        """Test extra keyword arguments override the defaults."""
        annotation = create_standard_annotation("Test", showarrow=True, bgcolor="yellow")
        assert annotation["showarrow"] is True
        assert annotation["bgcolor"] == "yellow"


class TestBarLayout:
    """Test the peak bar layout."""

    def test_grouped_clickable_bars(self):
        """Test bars are grouped and selectable by click."""
        fig = apply_bar_layout(go.Figure(), title="Peaks")

        assert fig.layout.barmode == "group"
        assert fig.layout.clickmode == "event+select"
        assert fig.layout.showlegend is True
        assert fig.layout.xaxis.type == "category"
        assert fig.layout.title.text == "Peaks"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
