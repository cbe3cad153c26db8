"""
Worker module.
Contains the analysis executor run by the job queue.
"""

from sitescan.worker.analyzer import AnalysisError, CategoryReport
from sitescan.worker.handlers import AnalysisExecutor

__all__ = ["AnalysisExecutor", "AnalysisError", "CategoryReport"]
