"""
Decider - Source Package

A personal accountability engine: a daily/weekly reconciliation job that
turns habit, workout and bank signals into a rules-driven ledger of debts,
bonuses and punishments.

DESIGN PRINCIPLES:
1. Rules drive amounts, code drives sequencing
2. Money is rounded at every step, never deferred
3. One failing step never sinks the whole reconciliation
4. Every ledger mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Decider Team"
