"""ciscout: detect mobile project platforms and generate CI pipeline configs."""

__version__ = "0.1.0"
