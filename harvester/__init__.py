"""Edu Harvester — AI-gated ingestion of educational documents.

Sub-packages
------------
ai        relevance filter, rate limiter, classification sorter
download  deduplicating download engine
storage   remote archive (Google Drive) and path mappings
stats     process-wide counters
crawl     glue between the crawler and the pipeline
api       FastAPI read/reset surface
"""
