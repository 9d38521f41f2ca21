"""
build-a-bot: Budget-constrained PC build assistant.

Asks a language model for a parts list, prices every part against live
marketplace listings, and asks once more for adjustments when the priced
build is incomplete or misses the budget.
"""

__version__ = "0.1.0"
