"""
Shared Kernel Module
====================

Generic infrastructure used by every bounded context (triage, chat):
structured logging and HTTP middleware.

DO NOT add classification or conversation logic to the shared kernel.
"""
