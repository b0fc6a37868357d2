"""Gateway WhatsApp sobre a Evolution API.

Camadas:
- api/: conector outbound (ApiGateway, RateLimiter, RetryingTransport) e rotas inbound
- app/: bootstrap, despacho de webhooks, filas e observabilidade
- config/: settings por domínio e logging estruturado
- utils/: exceções e redação de dados sensíveis
"""

__version__ = "1.0.0"
