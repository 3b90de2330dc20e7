"""
Ingestion pipeline components for BLS OEWS salary data.

Modules:
    base: Abstract row source and ingestion run tracking
    runner: Orchestrator that owns the load transaction
    metadata_store: Singleton data_metadata read / touch helpers
    scheduler: APScheduler job for the BLS freshness check

Subpackages:
    extractors: Spreadsheet reader and BLS release checker
    transformers: Normalizer, quality scorer, slug generator, deduplicator
    loaders: Dialect-aware idempotent upsert loader

Architecture:
    spreadsheet -> extractor (detailed rows only) -> normalizer -> scorer
    -> deduplicator -> slug collision check -> loader -> commit

    Normalization and scoring are pure. All writes of one run happen in a
    single transaction: either every table reflects the file or none does.

Usage:
    from ingestion.extractors.spreadsheet_extractor import SpreadsheetExtractor
    from ingestion.runner import IngestionRunner

Example:
    extractor = SpreadsheetExtractor("data/oesm24ma/MSA_M2024_dl.xlsx")
    runner = IngestionRunner(session_factory)
    result = await runner.run(extractor, data_period="May 2024")

    print(f"Loaded {result['facts_loaded']} salary records")
"""

__all__ = [
    "DataSource",
    "RunTracker",
    "IngestionRunner",
    "SpreadsheetExtractor",
    "BLSReleaseChecker",
    "RecordNormalizer",
    "EntityDeduplicator",
    "SalaryDataLoader",
    "FreshnessScheduler",
]
