"""Convergence projections and template-path implications for development metrics."""

__version__ = "0.1.0"
