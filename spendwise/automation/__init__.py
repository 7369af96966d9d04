"""
Background automation: the recurring materialization worker and the
supervisor that keeps it running as a child process.
"""
