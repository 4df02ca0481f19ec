"""Text and chart-widget output."""
