"""
Numbered schema migrations. Apply with ``migrate.migrate_up``.
"""
