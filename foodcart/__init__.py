"""
                Restaurant Ordering Service

Menu browsing, cart assembly and order submission backend with
photo storage and best-effort order notifications.

Author: Khalil_Bannouri
Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
__author__ = "Khalil_Bannouri"
