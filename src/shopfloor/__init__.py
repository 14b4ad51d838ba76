"""Shopfloor — e-commerce demo backend.

Session-authenticated product catalog and chat, with every change
pushed to all connected browsers over WebSockets.
"""

__version__ = "0.1.0"
