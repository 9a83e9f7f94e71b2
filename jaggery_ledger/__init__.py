# jaggery_ledger/__init__.py
"""
Inventory ledger and reconciliation engine for a jaggery trading business.

Lots bought from farmers become sellable stock, sales orders reserve that
stock through pick lines, packing confirmations decrement it, and payment
ledgers on both sides drive the outstanding balances.
"""

__version__ = "1.0.0"
