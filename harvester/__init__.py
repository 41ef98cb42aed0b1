"""
Episode harvester: discovers anime episodes on a streaming site, extracts
and selects video sources, and submits them to a job backend.
"""

__version__ = "1.0.0"
