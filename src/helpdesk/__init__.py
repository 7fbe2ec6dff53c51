"""Helpdesk Router: support-group recommendations for helpdesk tickets."""

__version__ = "1.0.0"
