"""
Cross-Provider Sync Service

Reconciles api_football (system of record) with highlightly.

Key components:
- Normalizers: Turn provider payloads into canonical records
- Adapters: Rate-limited, retried HTTP access to each provider
- Matchers: Correlate leagues, teams, players and fixtures across providers
- Orchestrator: Drive sync passes and write the mapping registry
"""
