"""Pipeline de ingestão e tasks em background."""

from app.pipeline.background_tasks import BackgroundTasks
from app.pipeline.ingestion import ALL_OBSERVERS_LOOKUP, IngestionPipeline

__all__ = ["ALL_OBSERVERS_LOOKUP", "BackgroundTasks", "IngestionPipeline"]
