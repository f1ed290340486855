"""
Marketplace use cases.

One use case per operation: signal reads and edits, settlement (unlock,
subscribe, follow, withdrawals, deposits), outcome refresh and the provider
leaderboard. Every write runs inside a single unit of work.
"""
