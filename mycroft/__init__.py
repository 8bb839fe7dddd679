"""
Mycroft Engine - productivity bookkeeping for developers

Streaks, XP and levels, achievements, focus sessions and analytics
behind one ProductivityEngine context object.
"""

__version__ = "2.0.0"

from mycroft.config import ConflictPolicy, EngineConfig
from mycroft.core.engine import LogActivityResult, ProductivityEngine
from mycroft.core.exceptions import MycroftError

__all__ = [
    '__version__',
    'ConflictPolicy',
    'EngineConfig',
    'LogActivityResult',
    'MycroftError',
    'ProductivityEngine'
]
