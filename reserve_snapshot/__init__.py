"""Scheduled Flash Pool reserve snapshots for the Ontology chain."""

__version__ = "0.1.0"
