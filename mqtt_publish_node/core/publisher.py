"""
Non-blocking acknowledged publish over a shared connection.
"""
import logging
from concurrent.futures import Executor, Future
from typing import Callable, Optional

from .config import AT_LEAST_ONCE
from .connection import ConnectionHandle
from .models import Message, PublishOutcome
from ..utils.exceptions import PublishError

logger = logging.getLogger(__name__)

SuccessCallback = Callable[[Message], None]
FailureCallback = Callable[[Message, BaseException], None]


class PublishDispatcher:
    """Publishes messages and routes each outcome to exactly one callback.

    Every publish gets its own transport future, so outcomes of concurrent
    publishes on the same handle cannot be confused. Outcomes may arrive in
    any order. There is no retry.
    """

    def __init__(self, executor: Optional[Executor] = None):
        self.executor = executor

    def publish(self, handle: ConnectionHandle, message: Message, topic: str, payload: bytes,
                retained: bool, on_success: SuccessCallback, on_failure: FailureCallback,
                qos: int = AT_LEAST_ONCE) -> Future:
        """
        Publish payload to topic and return immediately.

        Returns a future resolving to the PublishOutcome after the matching
        callback has been invoked. The future never raises: transport errors
        become failure outcomes.
        """
        outcome_future = Future()

        try:
            transport_future = handle.transport.publish(topic, payload, qos=qos, retain=retained)
        except Exception as e:
            transport_future = Future()
            transport_future.set_exception(PublishError(f"Publish failed: {e}"))

        def on_done(done: Future):
            if done.cancelled():
                cause = PublishError("Publish cancelled")
                outcome = PublishOutcome.failed(message.with_error(cause), cause)
            elif done.exception() is not None:
                outcome = PublishOutcome.failed(message.with_error(done.exception()), done.exception())
            else:
                outcome = PublishOutcome.succeeded(message)
            if self.executor is not None:
                try:
                    self.executor.submit(self._report, outcome, outcome_future, on_success, on_failure)
                    return
                except RuntimeError as e:
                    # Executor shut down; report inline instead of dropping
                    logger.debug(f"Callback executor unavailable, reporting inline: {e}")
            self._report(outcome, outcome_future, on_success, on_failure)

        logger.debug(f"Publishing message {message.id} to {topic} ({len(payload)} bytes)")
        transport_future.add_done_callback(on_done)
        return outcome_future

    @staticmethod
    def _report(outcome: PublishOutcome, outcome_future: Future,
                on_success: SuccessCallback, on_failure: FailureCallback):
        try:
            if outcome.success:
                on_success(outcome.message)
            else:
                logger.warning(f"Failed to publish message {outcome.message.id}: {outcome.cause}")
                on_failure(outcome.message, outcome.cause)
        except Exception:
            logger.exception(f"Outcome callback for message {outcome.message.id} raised")
        finally:
            outcome_future.set_result(outcome)
