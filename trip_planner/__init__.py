"""
Trip Planner store: per-user trip data with durable write-back.
"""

__version__ = "1.0.0"
