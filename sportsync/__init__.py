"""
sportsync - cross-provider reconciliation and conflict resolution for football data.
"""
__version__ = "1.0.0"
