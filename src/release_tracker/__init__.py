"""Release checklist tracker with scheduled local reminders."""

__version__ = "0.1.0"
