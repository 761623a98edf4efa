"""Library Catalog - Core Application Package

This package contains the catalog modules:
- Data models and the status enum (models.py)
- SQLite document store (database.py, store.py)
- Form validation and sanitization (validators.py)
- Derived display fields (derived.py)
- Delete guard for referenced records (integrity.py)
- Catalog operations (library.py)
- API endpoints (api.py) and CLI (main.py)
"""
