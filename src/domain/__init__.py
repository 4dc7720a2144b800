"""Domain models and engines for the cash contract.

This package contains the immutable (Pydantic) ledger models, the validation engine
that decides whether a draft transaction is legal, and the coin selector that crafts
spends from a wallet. Nothing here knows about files, the wire format or settings.
"""

__all__ = [
    "amount",
    "coin_selection",
    "ledger",
    "validation",
]
