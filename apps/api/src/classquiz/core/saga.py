"""
Compensating Transactions

Multi-step flows that span independently failing stores (credential store
and relational store) cannot share one database transaction. They are
written as a saga instead: an ordered list of steps, each an action with an
optional compensation. When a step fails, the compensations of the steps
that already completed run in reverse order, then the step's error is raised.

Usage:
    saga = Saga("consume_invitation")
    saga.add_step(
        "create_identity",
        action=lambda results: store.create_identity(email, password),
        compensation=lambda identity_id: store.delete_identity(identity_id),
        on_error=lambda exc: IdentityCreationFailedError(str(exc)),
    )
    results = await saga.run()
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

StepAction = Callable[[dict[str, Any]], Awaitable[Any]]
StepCompensation = Callable[[Any], Awaitable[None]]
ErrorFactory = Callable[[Exception], Exception]


@dataclass
class SagaStep:
    """One step of a saga."""

    name: str
    action: StepAction
    compensation: StepCompensation | None = None
    on_error: ErrorFactory | None = None


class SagaError(Exception):
    """Raised when a step fails and it has no error factory of its own."""

    def __init__(self, saga_name: str, step_name: str, cause: Exception):
        self.saga_name = saga_name
        self.step_name = step_name
        self.cause = cause
        super().__init__(f"Saga '{saga_name}' failed at step '{step_name}': {cause}")


class Saga:
    """Ordered (action, compensation) pairs with automatic unwind on first failure."""

    def __init__(self, name: str):
        self.name = name
        self._steps: list[SagaStep] = []

    @property
    def steps(self) -> list[SagaStep]:
        return list(self._steps)

    def add_step(
        self,
        name: str,
        action: StepAction,
        compensation: StepCompensation | None = None,
        on_error: ErrorFactory | None = None,
    ) -> "Saga":
        self._steps.append(SagaStep(name, action, compensation, on_error))
        return self

    async def run(self) -> dict[str, Any]:
        """
        Execute every step in order.

        Each action receives the results of the steps before it, keyed by
        step name, and its own return value is stored under its name.

        Returns:
            Results of all steps keyed by step name

        Raises:
            The failing step's on_error(exc), or SagaError when it has none.
            The original exception is chained as __cause__.
        """
        results: dict[str, Any] = {}
        completed: list[SagaStep] = []

        for step in self._steps:
            try:
                results[step.name] = await step.action(results)
            except Exception as exc:
                logger.warning(f"Saga '{self.name}' step '{step.name}' failed: {exc}")
                await self._unwind(completed, results)
                error = step.on_error(exc) if step.on_error else SagaError(self.name, step.name, exc)
                raise error from exc
            completed.append(step)

        return results

    async def _unwind(self, completed: list[SagaStep], results: dict[str, Any]) -> None:
        for step in reversed(completed):
            if step.compensation is None:
                continue
            try:
                await step.compensation(results[step.name])
                logger.info(f"Saga '{self.name}' compensated step '{step.name}'")
            except Exception as exc:
                # Keep unwinding; the remaining compensations still need to run
                logger.error(
                    f"Saga '{self.name}' compensation for '{step.name}' failed: {exc}",
                    exc_info=True,
                )
