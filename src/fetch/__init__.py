"""Source fetchers.

This module reads asset bytes from disk, the network, and inline data URIs.
Each fetcher returns a private store fragment for one fetch round.
"""
