"""Ledger, admission, storage, reference lookups and audit services."""
