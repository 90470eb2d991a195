"""
Core follow tracking shared by the tray application and the command line tools.
"""

from .follow_store import FollowStore  # noqa: F401
from .live_checker import CheckerState, FollowLiveChecker  # noqa: F401
