"""Pool management package.

Provides Pool state and the PoolRegistry that creates and looks pools up.
"""

from .pool import Pool
from .registry import PoolRegistry

__all__ = [
    "Pool",
    "PoolRegistry",
]
