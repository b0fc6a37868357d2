"""Utilitários compartilhados (erros, mascaramento)."""
