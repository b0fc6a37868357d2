"""Camada de borda: conectores outbound (Evolution API) e rotas HTTP inbound."""
