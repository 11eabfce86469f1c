"""
                Table Ordering System

Backend for in-restaurant tablet ordering: customers order from the
table, the kitchen advances order status, administrators maintain
the menu catalog.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
