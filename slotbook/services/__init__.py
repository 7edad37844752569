"""
Service layer helpers that orchestrate store adapters and domain logic.
"""

from .scheduling_service import EventTypeSummary, SchedulingService, SchedulingStoreProtocol

__all__ = ["EventTypeSummary", "SchedulingService", "SchedulingStoreProtocol"]
