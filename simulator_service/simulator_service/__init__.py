"""Pizza order simulator: concurrent synthetic order dispatch."""

__version__ = "0.1.0"
