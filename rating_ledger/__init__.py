"""
Rating Ledger

Commission ledger for a hotel rating-task platform: users earn commission per
rating, request withdrawals, and an admin settles payouts and manages
per-user and platform-wide switches.
"""

__version__ = "1.0.0"
