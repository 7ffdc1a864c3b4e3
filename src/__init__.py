"""
Finance Report Engine - Source Package

Turns a user's stored financial records (expenses, debts, investment plans,
stock holdings, loans, taxes and fines) into time-bucketed aggregates,
trends, derived financial figures and exportable reports.

DESIGN PRINCIPLES:
1. Every report is computed from exactly one snapshot
2. Money is Decimal cents, never floats
3. Bad records degrade to defaults with recorded issues, never crash a report
4. Every report computation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Finance Report Engine Team"
