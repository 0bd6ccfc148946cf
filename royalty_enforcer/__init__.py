"""
Royalty-enforced asset transfer engine.

Subpackages:
- `state`: identities, balances, asset descriptors, offers and engine state
- `core`: pure validation and bookkeeping (policy, offers, splitter, authorizer)
- `integration`: ledger interface, configuration and the `RoyaltyEngine` facade
"""

__version__ = "0.1.0"
