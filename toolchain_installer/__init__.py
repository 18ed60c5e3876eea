"""Developer toolchain installer (state-derived, re-runnable).

Core design goals:
- Every phase re-derives its state from disk; no install manifest
- Idempotent phases that skip when already satisfied
- Non-destructive merges into user-owned settings
- Architecture-aware runtime selection (native vs. emulated)
- Verification as the single source of truth
- Centralized logging
"""

__all__ = []
