"""
Triage Interfaces Layer
=======================

FastAPI routes for ticket triage.
"""

from helpdesk.triage.interfaces.controllers import triage_router

__all__ = ["triage_router"]
