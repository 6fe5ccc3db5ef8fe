# app/models/__init__.py
"""
Database models module initialization.
Exports all database models for convenient imports throughout the application.

Models exported:
- Principal: account record for every tier (admin, subadmin, seller, user)
- Role: the role tag enum
- Wallet: balance of a funded principal
- WalletTransaction: append-only wallet log entry
"""
from .principal import FUNDED_ROLES, Principal, Role
from .wallet import Wallet, WalletTransaction
