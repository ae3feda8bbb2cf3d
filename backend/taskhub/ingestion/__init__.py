"""
Bulk task ingestion: upload hand-off, dispatch, normalization, upsert,
and source-file cleanup.  See `service.IngestionService` for the entry point.
"""
