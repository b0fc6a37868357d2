"""Configuração: settings (env/YAML) e logging estruturado."""
