"""
Shared utilities for the MySQL adapter.

This package contains:
- Schema and field descriptors
- Query descriptors and the QueryBuilder
- Execution and insert result models
"""
