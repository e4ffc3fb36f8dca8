"""
Domain modules for Gildhall Economy.

Each subpackage owns one area of the economy (character, catalog, economy,
trade, auction) plus the shared ledger primitives they all settle through.
"""
