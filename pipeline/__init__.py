"""
External PM ingestion pipeline.

Components:
    - ingestion: AirKorea connector, reading normalizer and data models
    - storage: worklist and upsert SQL contracts
    - orchestrator: bounded fan-out over all targets of one batch
    - response: final reply assembly
"""
