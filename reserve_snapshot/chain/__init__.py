"""Ontology chain access: binary codec and JSON-RPC client."""
