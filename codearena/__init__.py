"""
CodeArena - submission evaluation backend
Judge dispatch, aggregate statistics and daily challenges
"""

__version__ = "1.0.0"
