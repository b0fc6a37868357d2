"""Camada de aplicação: bootstrap, despacho de webhooks, filas e observabilidade."""
