"""Headless to headed escalation for whole browser sessions."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Generic, List, Optional, Tuple, Type, TypeVar

from ..errors import ConfigError

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class LaunchMode(str, Enum):
    """Browser visibility for one attempt."""

    HEADLESS = "headless"
    HEADED = "headed"

    @property
    def headless(self) -> bool:
        return self is LaunchMode.HEADLESS


@dataclass
class AttemptOutcome(Generic[T]):
    """Result of a single attempt: either a value or the error that ended it.

    ``final_state`` is the stage the attempt ended in; for a failed attempt
    that is the stage which raised.
    """

    mode: LaunchMode
    value: Optional[T] = None
    error: Optional[BaseException] = None
    final_state: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class EscalationMatrix(Generic[T]):
    """Run an attempt headless first, then once more headed on failure.

    The attempt callable must release every resource it acquired before it
    returns or raises; the next level only starts after that.
    """

    levels: Tuple[LaunchMode, ...] = (LaunchMode.HEADLESS, LaunchMode.HEADED)
    fatal_exceptions: Tuple[Type[BaseException], ...] = (ConfigError,)
    outcomes: List[AttemptOutcome[T]] = field(default_factory=list)
    # Reports the stage an attempt ended in, e.g. from the session it ran.
    state_of: Optional[Callable[[LaunchMode], Optional[str]]] = None

    def attempt(self, func: Callable[[LaunchMode], T], mode: LaunchMode) -> AttemptOutcome[T]:
        try:
            outcome = AttemptOutcome(mode=mode, value=func(mode))
        except self.fatal_exceptions:
            raise
        except Exception as exc:
            outcome = AttemptOutcome(mode=mode, error=exc)
        if self.state_of is not None:
            outcome.final_state = self.state_of(mode)
        self.outcomes.append(outcome)
        return outcome

    def run(self, func: Callable[[LaunchMode], T]) -> T:
        """Execute ``func`` at each level until one succeeds.

        Parameters
        ----------
        func : callable
            Receives the LaunchMode and returns the result or raises

        Returns
        -------
        T
            Value from the first successful level

        Raises
        ------
        Exception
            The error of the last level if every level failed
        """
        self.outcomes = []
        outcome: Optional[AttemptOutcome[T]] = None
        for index, mode in enumerate(self.levels):
            if index:
                LOGGER.warning(
                    "%s attempt failed in %s (%s), retrying %s",
                    outcome.mode.value,
                    outcome.final_state or "unknown state",
                    outcome.error,
                    mode.value,
                )
            outcome = self.attempt(func, mode)
            if outcome.ok:
                return outcome.value  # type: ignore[return-value]

        LOGGER.error("%s attempt failed as well: %s", outcome.mode.value, outcome.error)
        raise outcome.error  # type: ignore[misc]
