"""API — camada de borda HTTP.

Responsabilidades:
- Receber bundles de evidência e comandos de tracking
- Validar payloads na borda
- Traduzir backpressure do pipeline em respostas HTTP

NÃO PODE conter: regra de decisão, acesso direto a stores.
"""
