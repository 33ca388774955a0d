"""
FinTrack - Source Package

A local-first personal credit card and expense tracker.

DESIGN PRINCIPLES:
1. The ledger is the single source of truth
2. No transaction data leaves the device
3. Enrichment is best-effort and never blocks the user
4. Failures are recorded as data, not crashes
5. Persistence medium is swappable
"""

__version__ = "1.0.0"
__author__ = "FinTrack Team"
