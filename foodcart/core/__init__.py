"""
Core module initialization.
Exports configuration, logging utilities and the error taxonomy.
"""

from foodcart.core.config import get_settings, Settings, EnvironmentMode
from foodcart.core.exceptions import FoodCartError

__all__ = ["get_settings", "Settings", "EnvironmentMode", "FoodCartError"]
