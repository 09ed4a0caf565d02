"""Domain entities.

These are pure-ish structures used by the core. Keep filesystem/network I/O in adapters.
"""

from .base import *
from .dataset import *
from .model import *
from .report import *
