"""HTTP API for Syphon Ledger."""
