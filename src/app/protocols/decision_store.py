"""Protocolo do store de decisões por par (subject, observer).

Interface leve (ABC) dependida pelo pipeline.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from app.domain.processing_record import ProcessingRecord


class DecisionStoreProtocol(ABC):
    """Contrato assíncrono do store de decisões.

    Métodos canônicos:
    - get(subject_id, observer_id) -> ProcessingRecord | None
    - upsert(record) -> bool
      Escrita condicional atômica por chave com upgrade monotônico
      (REJECTED → ACCEPTED, nunca o inverso). TTL conforme status,
      renovado a cada escrita.
    """

    @abstractmethod
    async def get(self, subject_id: str, observer_id: str) -> ProcessingRecord | None:
        """Busca o registro do par.

        Returns:
            ProcessingRecord se existir e não expirou, None caso contrário.
        """

    @abstractmethod
    async def upsert(self, record: ProcessingRecord) -> bool:
        """Escreve o candidato respeitando a regra de upgrade.

        Args:
            record: Registro candidato (status + evidência considerada)

        Returns:
            True se o status do candidato foi escrito; False quando o
            registro armazenado já é ACCEPTED (só a evidência é mesclada).
        """
