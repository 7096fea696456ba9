"""
Troves & Coves storefront API.

Session-scoped cart, catalog reads, order placement with price snapshots,
contact intake and a thin payment-processor bridge.
"""

__version__ = "1.0.0"
