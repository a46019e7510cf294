"""
Finance Tracker - Source Package

A personal finance tracker for expenses, monthly budgets and wallets,
built around a deterministic analytics engine.

DESIGN PRINCIPLES:
1. Analytics are derived, never stored
2. The engine is pure: same inputs, same snapshot
3. Stores are swappable behind abstract interfaces
4. Every mutation is followed by an explicit recompute
5. Every mutation is auditable
"""

__version__ = "1.0.0"
__author__ = "Finance Tracker Team"
