"""
Durable job queue for workout log processing.

This package provides:
- Postgres-backed job store with SKIP LOCKED claims
- LISTEN/NOTIFY wake-up hints with periodic re-polling as a safety net
- A pool of two-state workers with per-worker exponential backoff
- Bounded retries with dead-lettering recomputed from (status, retry_count)
"""
