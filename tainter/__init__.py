"""Tainter: taint Kubernetes nodes based on their reported conditions."""

__version__ = "0.1.0"
