"""
Managed resource lifecycle on top of the orchestrator.

Maps create/read/update/delete onto orchestrator calls and records the
resulting identity and outputs in a ResourceState.
"""

from __future__ import annotations

import structlog

from tfapply.models import OperationRequest
from tfapply.orchestrator import LifecycleOrchestrator
from tfapply.state import ResourceState

logger = structlog.get_logger()


class ManagedResource:
    """One terraform module tracked across operations."""

    def __init__(self, orchestrator: LifecycleOrchestrator, state: ResourceState):
        self.orchestrator = orchestrator
        self.state = state

    def create(self, request: OperationRequest) -> ResourceState:
        result = self.orchestrator.create(request)
        self.state.id = result.identity
        self.state.outputs = dict(result.outputs)
        logger.info("resource_created", id=self.state.id, outputs=sorted(self.state.outputs))
        return self.state

    def update(self, request: OperationRequest) -> ResourceState:
        result = self.orchestrator.update(request)
        self.state.id = result.identity
        self.state.outputs = dict(result.outputs)
        logger.info("resource_updated", id=self.state.id, outputs=sorted(self.state.outputs))
        return self.state

    def read(self, request: OperationRequest) -> ResourceState:
        self.orchestrator.read(request)
        return self.state

    def apply(self, request: OperationRequest) -> ResourceState:
        """Create a new resource, or update the one already in state."""
        if self.state.exists:
            return self.update(request)
        return self.create(request)

    def delete(self, request: OperationRequest) -> ResourceState:
        self.orchestrator.destroy(request)
        logger.info("resource_destroyed", id=self.state.id)
        self.state.clear()
        return self.state
