"""
Step through the current user's experiment order.

For each condition the runner points every configured endpoint at it,
persists the experiment index, then waits for the operator to advance.
The index survives restarts so an interrupted run resumes where it stopped.
"""

import logging
import threading
from typing import Callable, Optional

from .errors import ConfigurationMissing, TransientIOError
from .redirect import RedirectClient
from .schema import RunResult
from .state import ExperimentSession

logger = logging.getLogger(__name__)

# advance(position, condition, total) -> False to stop
AdvanceCallback = Callable[[int, int, int], bool]


class ExperimentRunner:
    def __init__(
        self,
        session: ExperimentSession,
        client: RedirectClient,
        cancel_event: Optional[threading.Event] = None,
        report: Optional[Callable[[str], None]] = None,
    ):
        self.session = session
        self.client = client
        self.cancel_event = cancel_event or threading.Event()
        self._report = report or (lambda message: None)

    def _check_ready(self):
        order = self.session.user.order
        if not self.session.user.email:
            raise ConfigurationMissing("Cannot run experiments as user email address not set")
        if not order:
            raise ConfigurationMissing("Cannot run experiments as user experiment order not set (is the range set?)")
        targets = [e for e in self.session.endpoints if e.url]
        if not targets:
            raise ConfigurationMissing("Cannot run experiments as neither server nor beacon URL is set")
        return order, targets

    def reset(self) -> None:
        self.session.exp_index = 0

    def run(self, advance: AdvanceCallback) -> RunResult:
        """
        Run from the stored experiment index to the end of the order.

        Stops early when advance() returns False or cancel_event is set. The
        order itself is never modified; only the index moves.
        """
        order, targets = self._check_ready()
        sequence = order.sequence
        total = len(sequence)
        position = self.session.exp_index
        if position >= total:
            logger.info(f"Stored experiment index {position} past end of order, restarting")
            position = 0

        result = RunResult(total=total, position=position)
        self.cancel_event.clear()

        while position < total:
            if self.cancel_event.is_set():
                result.cancelled = True
                break

            condition = sequence[position]
            try:
                for endpoint in targets:
                    text = self.session.send_redirect(endpoint.kind, condition, self.client)
                    self._report(f"{endpoint.label} redirect set to {condition}: {text}")
            except TransientIOError as e:
                result.error = str(e)
                break

            result.visited.append(condition)
            self.session.exp_index = position
            logger.info(f"Experiment {position + 1}/{total}: condition {condition}")

            keep_going = advance(position, condition, total)
            if not keep_going or self.cancel_event.is_set():
                result.cancelled = True
                break
            position += 1
            result.position = position
            self.session.exp_index = position

        if position >= total:
            result.completed = True
            self._finish(targets)
            self.reset()
            result.position = 0
        return result

    def _finish(self, targets) -> None:
        for endpoint in targets:
            try:
                text = self.session.send_redirect(endpoint.kind, None, self.client)
                self._report(f"{endpoint.label} redirect cleared: {text}")
            except TransientIOError as e:
                self._report(f"Could not clear {endpoint.kind.value} redirect: {e}")
