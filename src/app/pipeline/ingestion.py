"""Pipeline de ingestão — fila limitada + workers + limitadores.

Ciclo de vida de um bundle:
    QUEUED → DEQUEUED → EVALUATING (por observer) → DECIDED → NOTIFIED | SUPPRESSED

- A fila limitada é o mecanismo de backpressure: cheia, `enqueue` falha
  imediatamente (modo reject) ou aguarda até o timeout (modo block), sempre
  sinalizando o produtor com QueueFullError.
- Cada bundle é distribuído para todos os observers interessados (índice
  reverso; sem tracking, lista completa via LookupGateway).
- Avaliações por observer passam pelo semáforo de avaliação; consultas
  lentas pelo semáforo próprio do LookupGateway.
- Erro em um observer não afeta os demais nem o loop do worker: o
  resultado é FAILED e o par é reavaliado no próximo evento do subject.
- Na dúvida, não notifica: notificação só depois de upsert bem-sucedido
  que escreveu ACCEPTED.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections import Counter
from typing import TYPE_CHECKING, Any

from app.domain.evidence import SubjectBundle
from app.domain.outcomes import BundleOutcome, BundleState, ObserverOutcome
from app.domain.processing_record import DecisionStatus, ProcessingRecord
from app.observability import (
    correlation_scope,
    record_decision,
    record_latency,
    record_queue_depth,
)
from app.pipeline.background_tasks import BackgroundTasks
from app.services.evidence_differ import diff_evidence, evidence_in_horizon
from config.logging import mask_identifier
from config.settings import DecisionSettings, PipelineSettings
from utils.errors import QueueFullError

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from app.domain.evidence import EvidenceItem
    from app.protocols.collaborators import FilterPredicate, NotificationSink, ObserverDirectory
    from app.protocols.decision_audit_store import DecisionAuditStoreProtocol
    from app.protocols.decision_store import DecisionStoreProtocol
    from app.services.lookup_gateway import LookupGateway
    from app.services.rate_governor import OutboundRateGovernor
    from app.services.reverse_index import ReverseIndexCache

logger = logging.getLogger(__name__)

# Chave do cache de consultas para a lista completa de observers
ALL_OBSERVERS_LOOKUP = "observers:all"


class IngestionPipeline:
    """Orquestra fila, workers e avaliação incremental por observer."""

    def __init__(
        self,
        *,
        decision_store: DecisionStoreProtocol,
        reverse_index: ReverseIndexCache,
        lookup_gateway: LookupGateway,
        observer_directory: ObserverDirectory,
        predicate: FilterPredicate,
        sink: NotificationSink,
        governor: OutboundRateGovernor,
        pipeline_settings: PipelineSettings | None = None,
        decision_settings: DecisionSettings | None = None,
        audit_store: DecisionAuditStoreProtocol | None = None,
        background: BackgroundTasks | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._decision_store = decision_store
        self._reverse_index = reverse_index
        self._lookup_gateway = lookup_gateway
        self._observer_directory = observer_directory
        self._predicate = predicate
        self._sink = sink
        self._governor = governor
        self._settings = pipeline_settings or PipelineSettings()
        self._decision_settings = decision_settings or DecisionSettings()
        self._audit_store = audit_store
        self._background = background or BackgroundTasks()
        self._clock = clock

        self._queue: asyncio.Queue[SubjectBundle] = asyncio.Queue(
            maxsize=self._settings.queue_capacity
        )
        self._evaluation_semaphore = asyncio.Semaphore(self._settings.max_concurrent_evaluations)
        self._workers: list[asyncio.Task[None]] = []
        self._outcome_counts: Counter[str] = Counter()
        self._processed_bundles = 0
        self._rejected_enqueues = 0

    # ──────────────────────────────────────────────────────────────
    # Entrada (backpressure)
    # ──────────────────────────────────────────────────────────────

    async def enqueue(self, bundle: SubjectBundle) -> int:
        """Enfileira bundle. Retorna a profundidade da fila.

        Raises:
            QueueFullError: Fila cheia (reject) ou sem vaga até o timeout (block).
        """
        if self._settings.queue_full_mode == "reject":
            try:
                self._queue.put_nowait(bundle)
            except asyncio.QueueFull as exc:
                self._signal_full(bundle)
                raise QueueFullError("Fila de ingestão cheia") from exc
        else:
            try:
                await asyncio.wait_for(
                    self._queue.put(bundle),
                    timeout=self._settings.enqueue_timeout_seconds,
                )
            except TimeoutError as exc:
                self._signal_full(bundle)
                raise QueueFullError("Fila de ingestão cheia (timeout)") from exc

        logger.debug(
            "bundle_enqueued",
            extra={
                "subject_id": mask_identifier(bundle.subject_id),
                "state": BundleState.QUEUED.value,
                "queue_depth": self._queue.qsize(),
            },
        )
        return self._queue.qsize()

    async def enqueue_payload(self, raw: dict[str, Any]) -> SubjectBundle:
        """Valida payload bruto (descartando itens malformados) e enfileira."""
        bundle = SubjectBundle.from_payload(raw)
        await self.enqueue(bundle)
        return bundle

    def _signal_full(self, bundle: SubjectBundle) -> None:
        self._rejected_enqueues += 1
        logger.warning(
            "ingestion_queue_full",
            extra={
                "subject_id": mask_identifier(bundle.subject_id),
                "queue_capacity": self._settings.queue_capacity,
                "mode": self._settings.queue_full_mode,
            },
        )
        record_queue_depth(self._queue.qsize(), self._settings.queue_capacity)

    # ──────────────────────────────────────────────────────────────
    # Workers
    # ──────────────────────────────────────────────────────────────

    async def start(self) -> None:
        """Inicia o pool de workers (idempotente)."""
        if self._workers:
            return
        self._workers = [
            asyncio.create_task(self._worker_loop(worker_id), name=f"ingestion-worker-{worker_id}")
            for worker_id in range(self._settings.worker_count)
        ]
        logger.info("ingestion_pipeline_started", extra={"workers": len(self._workers)})

    async def stop(self, timeout_seconds: float = 30.0) -> None:
        """Aguarda a fila drenar (limitado) e encerra os workers."""
        if self._workers:
            try:
                await asyncio.wait_for(self._queue.join(), timeout=timeout_seconds)
            except TimeoutError:
                logger.warning(
                    "ingestion_pipeline_drain_timeout",
                    extra={"pending_bundles": self._queue.qsize()},
                )
        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        await self._background.drain(timeout_seconds)
        logger.info("ingestion_pipeline_stopped", extra=self.stats())

    async def _worker_loop(self, worker_id: int) -> None:
        while True:
            bundle = await self._queue.get()
            try:
                with correlation_scope():
                    await self.process_bundle(bundle)
            except Exception as exc:
                # process_bundle já isola observers; aqui só protege o loop
                logger.error(
                    "ingestion_worker_error",
                    extra={"worker_id": worker_id, "error_type": type(exc).__name__},
                )
            finally:
                self._queue.task_done()

    # ──────────────────────────────────────────────────────────────
    # Processamento
    # ──────────────────────────────────────────────────────────────

    async def process_bundle(self, bundle: SubjectBundle) -> BundleOutcome:
        """Avalia um bundle para todos os observers interessados."""
        started_at = time.perf_counter()
        outcome = BundleOutcome(subject_id=bundle.subject_id, state=BundleState.DEQUEUED)

        observers = await self._resolve_observers(bundle.subject_id)
        outcome.state = BundleState.EVALUATING
        results = await asyncio.gather(
            *(self._evaluate_guarded(bundle, observer_id) for observer_id in observers)
        )
        outcome.outcomes = dict(zip(observers, results, strict=True))
        outcome.state = BundleState.DECIDED
        outcome.finalize()

        self._processed_bundles += 1
        self._outcome_counts.update(result.value for result in results)
        logger.info(
            "bundle_processed",
            extra={
                "subject_id": mask_identifier(bundle.subject_id),
                "state": outcome.state.value,
                "observers": len(observers),
                "notified": len(outcome.notified),
                "evidence_items": len(bundle.evidence),
            },
        )
        record_latency("pipeline", "process_bundle", (time.perf_counter() - started_at) * 1000)
        return outcome

    async def _resolve_observers(self, subject_id: str) -> list[str]:
        indexed = self._reverse_index.lookup(subject_id)
        if indexed:
            return sorted(indexed)
        try:
            observers = await self._lookup_gateway.fetch(
                ALL_OBSERVERS_LOOKUP,
                self._observer_directory.list_observers,
            )
        except Exception as exc:
            logger.warning(
                "observer_resolution_failed",
                extra={
                    "subject_id": mask_identifier(subject_id),
                    "error_type": type(exc).__name__,
                },
            )
            return []
        return sorted({str(observer_id) for observer_id in observers or []})

    async def _evaluate_guarded(self, bundle: SubjectBundle, observer_id: str) -> ObserverOutcome:
        async with self._evaluation_semaphore:
            try:
                return await self._evaluate_observer(bundle, observer_id)
            except Exception as exc:
                logger.warning(
                    "observer_evaluation_failed",
                    extra={
                        "subject_id": mask_identifier(bundle.subject_id),
                        "observer_id": observer_id,
                        "error_type": type(exc).__name__,
                    },
                )
                record_decision(ObserverOutcome.FAILED.value)
                return ObserverOutcome.FAILED

    async def _evaluate_observer(
        self,
        bundle: SubjectBundle,
        observer_id: str,
    ) -> ObserverOutcome:
        subject_id = bundle.subject_id
        now = self._clock()
        horizon = now - self._decision_settings.lookback_seconds

        record = await self._decision_store.get(subject_id, observer_id)
        if record is not None and record.is_accepted:
            record_decision(ObserverOutcome.SUPPRESSED.value)
            return ObserverOutcome.SUPPRESSED

        new_items = diff_evidence(bundle.evidence, record, horizon)
        if not new_items:
            record_decision(ObserverOutcome.SUPPRESSED.value)
            return ObserverOutcome.SUPPRESSED

        if self._decision_settings.evaluation_policy == "full":
            evaluated = evidence_in_horizon(bundle.evidence, horizon)
        else:
            evaluated = new_items

        accepted = await self._run_predicate(subject_id, observer_id, evaluated)
        status = DecisionStatus.ACCEPTED if accepted else DecisionStatus.REJECTED
        if record is None:
            candidate = ProcessingRecord.first_decision(
                subject_id, observer_id, status, now, evaluated
            )
        else:
            candidate = record.with_evidence(evaluated, decided_at=now, status=status)

        written = await self._decision_store.upsert(candidate)
        self._schedule_audit(candidate, written, len(new_items))

        if status is DecisionStatus.REJECTED:
            record_decision(ObserverOutcome.REJECTED.value, len(evaluated), len(new_items))
            return ObserverOutcome.REJECTED

        if not written:
            # Outro worker aceitou primeiro: notificação já é dele
            record_decision(ObserverOutcome.SUPPRESSED.value, len(evaluated), len(new_items))
            return ObserverOutcome.SUPPRESSED

        logger.info(
            "decision_accepted",
            extra={
                "subject_id": mask_identifier(subject_id),
                "observer_id": observer_id,
                "upgrade": record is not None,
                "sources": len(candidate.evidence_seen),
            },
        )
        await self._governor.acquire(observer_id)
        await self._sink.notify(
            observer_id,
            subject_id,
            {
                "kind": "accepted",
                "decided_at": now,
                "upgrade": record is not None,
                "evidence": [item.to_dict() for item in evaluated],
                "new_evidence": [item.to_dict() for item in new_items],
            },
        )
        record_decision(ObserverOutcome.NOTIFIED.value, len(evaluated), len(new_items))
        return ObserverOutcome.NOTIFIED

    async def _run_predicate(
        self,
        subject_id: str,
        observer_id: str,
        evidence: Sequence[EvidenceItem],
    ) -> bool:
        result = self._predicate.evaluate(subject_id, observer_id, tuple(evidence))
        if inspect.isawaitable(result):
            result = await asyncio.wait_for(
                result,
                timeout=self._settings.evaluation_timeout_seconds,
            )
        return bool(result)

    def _schedule_audit(self, record: ProcessingRecord, written: bool, new_items: int) -> None:
        if self._audit_store is None:
            return
        self._background.schedule(
            self._audit_store.append(
                {
                    "event_type": "decision_recorded",
                    "subject_id": record.subject_id,
                    "observer_id": record.observer_id,
                    "status": record.status.value,
                    "written": written,
                    "new_items": new_items,
                    "sources": list(record.evidence_seen),
                    "decided_at": record.last_decision_time,
                }
            ),
            name="decision-audit",
        )

    # ──────────────────────────────────────────────────────────────
    # Introspecção
    # ──────────────────────────────────────────────────────────────

    @property
    def queue_depth(self) -> int:
        return self._queue.qsize()

    @property
    def queue_capacity(self) -> int:
        return self._settings.queue_capacity

    @property
    def is_running(self) -> bool:
        return any(not task.done() for task in self._workers)

    def stats(self) -> dict[str, Any]:
        """Snapshot de contadores do pipeline."""
        return {
            "queue_depth": self._queue.qsize(),
            "queue_capacity": self._settings.queue_capacity,
            "workers": len(self._workers),
            "processed_bundles": self._processed_bundles,
            "rejected_enqueues": self._rejected_enqueues,
            "background_tasks": self._background.active,
            "outcomes": dict(self._outcome_counts),
        }
