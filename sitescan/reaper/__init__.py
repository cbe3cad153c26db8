"""
Reaper module.
Contains the periodic cleanup loop for finished jobs.
"""

from sitescan.reaper.main import Reaper

__all__ = ["Reaper"]
