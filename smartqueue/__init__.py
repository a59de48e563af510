"""Smart ticket queue: urgency scoring and ranking for the support admin queue."""

__version__ = "1.0.0"
