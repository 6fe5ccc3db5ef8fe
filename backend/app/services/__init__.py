"""
Services Module

Core of the reseller portal:
- directory: account directory (principals, unique usernames, creator edges)
- ledger: wallet balances and the append-only transaction log
- provisioning: creating subordinate principals and adjusting wallets
- authz: authentication and ownership-scope checks
- portal: the operations exposed to the HTTP layer
"""
