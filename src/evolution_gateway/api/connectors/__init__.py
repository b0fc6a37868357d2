"""Conectores de APIs externas."""
