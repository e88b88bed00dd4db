"""
PC Store API

Storefront and admin backend for PC hardware products.
"""

__version__ = "1.0.0"
