"""Crawl glue — wires crawler output into the ingestion pipeline."""

from harvester.crawl.orchestrator import CrawlOrchestrator, PageReport

__all__ = ["CrawlOrchestrator", "PageReport"]
