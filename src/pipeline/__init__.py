"""Asset-resolution pipeline.

This module runs fetch rounds and iterates dependency discovery until a
fixed point is reached, producing one raw asset store per load.
"""
