# ==== FULFILLMENT EXCEPTION ENGINE ==== #

"""
Order-exception reconciliation engine for the warehouse fulfillment pipeline.

Sweeps WIP orders, completes the ones that have finished, forces repicks of
stalled lines and applies pick completion notifications to order items.
"""

__version__ = "1.0.0"
