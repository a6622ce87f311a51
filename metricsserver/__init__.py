"""Scrape, decode and present Kubernetes node and pod resource metrics."""

__version__ = "0.1.0"