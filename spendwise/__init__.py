"""
Spendwise - personal finance backend

Encrypted expense and income tracking with recurring-transaction
automation and scoped API keys for external integrations.
"""

__version__ = "1.0.0"
__author__ = "Spendwise Team"
