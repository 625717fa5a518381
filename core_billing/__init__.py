"""
Core Billing System

Installment billing and collections for small businesses: installment
schedules, balances and arrears, payment reconciliation, rescheduling with
arrears interest and customer account statements. All monetary values use Decimal.
"""

__version__ = "1.0.0"
