"""Facility compliance checklist: audit sessions, scoring and record storage."""

__version__ = "0.1.0"
