"""
CrediFlow

Microfinance back office: client registry, French and simple-interest
amortization schedules in Decimal, installment payments, overdue detection
and loan lifecycle, collections queues and a hash-chained audit trail.
"""

__version__ = "1.0.0"
