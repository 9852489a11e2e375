"""
Thin CRUD repositories over the irismod tables.

Each repository takes an open aiosqlite connection and never commits; callers
wrap calls in ``ConnectionManager.transaction()`` so related statements commit
together.

- **members_repo.py**: tenants / members existence rows
- **warnings_repo.py**: warning ledger rows
- **automod_rules_repo.py**: per-tenant threshold rules (single-statement upsert)
- **secrets_repo.py**: per-user vault tokens and provider settings
"""
