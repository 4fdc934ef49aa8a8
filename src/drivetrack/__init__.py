"""Drive tracking backend: mentor allotment and stage progression."""

__version__ = "1.0.0"
