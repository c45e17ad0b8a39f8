"""App — orquestração, domínio e infraestrutura do motor de deduplicação.

Subpastas:
- bootstrap/: composition root (factories, inicialização, wiring)
- domain/: evidência, registros de decisão, tracking
- protocols/: contratos/interfaces
- services/: differ, caches de leitura, índice reverso, rate governor
- pipeline/: fila limitada, workers e tasks em background
- infra/: stores, caches, sinks de notificação, diretórios
- observability/: correlation id e métricas via log estruturado

Padrão: app executa; api adapta; config configura; utils apoia.
"""
