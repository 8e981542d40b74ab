"""
SyncScript knowledge vault backend.
"""

__version__ = "1.0.0"
