"""
Triage Module
=============

Bounded Context for routing IT support tickets to support groups.

Responsibilities:
- Classify tickets against a fixed support group taxonomy with an LLM
- Vote among similar historical tickets using pgvector similarity search
- Reconcile both signals into one recommendation
- Backfill embeddings for historical tickets
"""

__version__ = "1.0.0"
