"""
HTTP API for spendwise.
"""
