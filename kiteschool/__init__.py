# Kite School Billboard - Core Library
"""
Teacher-day scheduling for a kite school.

Packages:
- scheduling: timelines, conflict checks, billboard aggregation
- observability: logging and request IDs

Modules:
- config_store: school configuration (YAML)
- db / schema / event_store: SQLite persistence
"""

__version__ = "0.4.0"
