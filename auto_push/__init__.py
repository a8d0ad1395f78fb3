"""
Auto-Push Monitor

Watches a file or directory inside a git working tree and publishes
every detected change to the configured remote, recording each push
in a NOTIFICATIONS.md audit trail.
"""

__version__ = "1.0.0"
