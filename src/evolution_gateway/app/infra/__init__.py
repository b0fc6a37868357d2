"""Infraestrutura: filas e stores."""
