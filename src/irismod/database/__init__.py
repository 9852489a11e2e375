"""
Database package for irismod.

Public API:
    - Database: Lifecycle coordinator (open connection, create schema, close)
    - ConnectionManager: Single aiosqlite connection with serialised writes
"""
