"""
Lecture Reminders

A timetable bot backend that keeps per-user notification timers:
- Daily digest of today's lectures
- Weekly digest of the Monday-Friday teaching week
- A reminder a few minutes before each lecture

Calendar access, user preferences and message delivery are pluggable;
see calendar_source, users and notify_channels.
"""

__version__ = "1.0.0"

__all__ = ["__version__"]
