"""
Configuration for the MySQL adapter.
"""
