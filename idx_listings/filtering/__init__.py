"""
Filtering module for normalized properties.

This module provides functionality to filter and sort canonical properties
by type, price range, rooms and location.
"""

from .property_filter import SORT_OPTIONS, PropertyFilter

__all__ = ['PropertyFilter', 'SORT_OPTIONS']
