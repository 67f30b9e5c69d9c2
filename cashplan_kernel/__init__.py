"""
Cashplan Kernel

Shared foundation for the household cash-planning engines:
- Integer-cent money arithmetic with explicit round-half-up
- Calendar helpers (month clamping, calendar month differences)
- Typed exception hierarchy
- Structured JSON logging
- Append-only, idempotent funding ledger persistence
"""

__version__ = "0.1.0"
