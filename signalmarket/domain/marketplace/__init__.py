"""
Marketplace bounded context: domain layer.

This module contains all domain logic for the marketplace context:
- Signal entitlement (who may see what)
- Signal outcome evaluation (stop-loss / take-profit)
- Ledger contracts and the transaction state machine
"""
