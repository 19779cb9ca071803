"""
Services module.

This module organizes services into:
- core: Provider-independent plumbing (rate limiting)
- sync: Normalizers, adapters, matching and the reconciliation orchestrator
- conflicts: Repair passes over persisted canonical rows
"""
