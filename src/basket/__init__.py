"""
Basket shopping-list and store collaboration core.

The package exposes the household/store access model, the invitation lifecycle, and the
store catalog and shopping list operations that sit behind the JSON API.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
