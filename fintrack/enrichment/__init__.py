"""Card enrichment package."""

from fintrack.enrichment.scheduler import EnrichmentScheduler, SyncIntent

__all__ = ["EnrichmentScheduler", "SyncIntent"]
