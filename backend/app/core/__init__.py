# app/core/__init__.py
"""
Core application modules.
Contains essential infrastructure components:
- bootstrap: one-time admin creation (setup key or environment variables)
- db: Database configuration, connection management and transactions
- errors: typed error taxonomy rendered by the API layer
- security: Password hashing and JWT access tokens
"""
