"""
Capability reporting.

Turns the outcome of a handler's apply/delete into a status condition on the
owner object. Conditions live in the owner's persisted status, so the last
known capability health survives restarts.
"""

import logging
from typing import Optional

from ..cluster import ClusterError, ObjectStore
from .handler import FeaturesHandler
from .tracker import Condition, KubeObject, set_status_condition

logger = logging.getLogger("clusterfeatures.reporter")


class CapabilityReporter:
    """Writes one capability condition onto an owner object."""

    def __init__(self, client: ObjectStore, owner: KubeObject, initial_condition: Condition):
        """
        Initialize the reporter.

        Args:
            client: Object store holding the owner
            owner: Object whose ``status.conditions`` receive the condition
            initial_condition: Condition reported when the handler succeeds
        """
        self.client = client
        self.owner = owner
        self.initial_condition = initial_condition

    def condition_for(self, error: Optional[BaseException]) -> Condition:
        if error is None:
            return self.initial_condition
        return self.initial_condition.failed(str(error))

    async def report(self, error: Optional[BaseException] = None) -> Condition:
        """
        Record the outcome on the owner, in memory and on the cluster.

        Raises:
            ClusterError: If the owner status could not be written
        """
        condition = self.condition_for(error)
        set_status_condition(self.owner.status.conditions, condition)

        metadata = self.owner.metadata
        latest = await self.client.get(
            self.owner.api_version, self.owner.kind, metadata.name, metadata.namespace
        )
        persisted = type(self.owner).from_object(latest)
        if not set_status_condition(persisted.status.conditions, condition):
            return condition

        await self.client.update(persisted.to_object(), subresource="status")
        logger.info(
            f"Reported {condition.type}={condition.status.value} ({condition.reason}) "
            f"on {self.owner.kind} {metadata.name}"
        )
        return condition


class HandlerWithReporter:
    """FeaturesHandler whose outcome is reported as a capability condition."""

    def __init__(self, handler: FeaturesHandler, reporter: CapabilityReporter):
        self.handler = handler
        self.reporter = reporter

    async def apply(self) -> None:
        await self._run(self.handler.apply)

    async def delete(self) -> None:
        await self._run(self.handler.delete)

    async def _run(self, operation) -> None:
        try:
            await operation()
        except Exception as e:
            try:
                await self.reporter.report(e)
            except ClusterError as report_error:
                logger.error(f"Failed to report capability failure: {report_error}")
            raise
        await self.reporter.report(None)
