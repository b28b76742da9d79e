"""
Data access layer for the MySQL adapter.

This package contains:
- MySQLAdapter: Facade invoked by the ORM session layer
- ConnectionSession: Single lazily-opened connection with reconnect-on-drop
- criteria / clauses: Parameterized SQL compilation
- codec: Conversion between column values and semantic field kinds
"""
