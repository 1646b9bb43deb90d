"""
Storage backends.
"""

from civicconnect.storage.base import Storage
from civicconnect.storage.memory import MemoryStorage
from civicconnect.storage.sql import SQLAlchemyStorage

__all__ = ["Storage", "MemoryStorage", "SQLAlchemyStorage"]
