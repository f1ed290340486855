"""
Infrastructure adapters for the marketplace bounded context.

SQLAlchemy Core persistence (tables, unit of work, ledger, repositories)
and httpx clients for the price oracle and block explorers.
"""
