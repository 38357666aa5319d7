"""
Reaper module.
Contains the reaper that releases locks left behind by dead workers.
"""

from jobqueue.reaper.main import Reaper, run

__all__ = ["Reaper", "run"]
