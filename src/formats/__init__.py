"""Format dispatch layer.

This module maps asset extensions onto dependency scanners and decoders.
It lets the pipeline discover references without knowing any format.
"""
