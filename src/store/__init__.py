"""Raw asset storage layer.

This module holds fetched asset bytes keyed by normalized identifiers.
It resolves lookups exactly first and then by the fuzzy alias rule.
"""
