"""Rotas HTTP da API.

Responsabilidades:
- Definir endpoints HTTP (ingestão, tracking, health)
- Validação inicial de request (schemas pydantic)
- Delegação para o pipeline e serviços do container
- Respostas HTTP apropriadas (202 enfileirado, 429 fila cheia)

Estrutura:
- routes/health/: health checks e readiness
- routes/ingest/: bundles de evidência, tracking de valor, stats

Agregação:
- router.py: registra todos os routers no app principal
"""

from __future__ import annotations

from api.routes.router import create_api_router

__all__ = ["create_api_router"]
