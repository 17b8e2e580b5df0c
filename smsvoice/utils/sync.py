"""Waiting for remote resources to reach a lifecycle status"""

import logging
import time
from collections.abc import Callable, Iterable
from typing import Optional, TypeVar

from smsvoice import config
from smsvoice.utils.backoff import ExponentialBackoff

LOG = logging.getLogger(__name__)

T = TypeVar("T")

StatusRefreshFunction = Callable[[], tuple[Optional[T], str]]
"""Returns the current resource and its status, or ``(None, "")`` if the resource does not exist."""


class WaitError(Exception):
    """Base class of all errors raised while waiting for a status transition."""

    pass


class NotFoundError(WaitError):
    """The remote resource does not exist (anymore)."""

    def __init__(self, message: str, last_error: Exception = None):
        super().__init__(message)
        self.last_error = last_error


class UnexpectedStateError(WaitError):
    """The remote resource reached a status that is neither pending nor a target."""

    def __init__(self, resource_id: str, state: str, expected: Iterable[str]):
        self.resource_id = resource_id
        self.state = state
        self.expected = sorted(expected)
        super().__init__(
            f"unexpected state '{state}' of resource {resource_id}, "
            f"wanted target '{', '.join(self.expected)}'"
        )


class WaitTimeoutError(WaitError, TimeoutError):
    """The timeout elapsed while the remote resource was still in a pending status."""

    def __init__(
        self, resource_id: str, last_state: Optional[str], expected: Iterable[str], timeout: float
    ):
        self.resource_id = resource_id
        self.last_state = last_state
        self.expected = sorted(expected)
        self.timeout = timeout
        super().__init__(
            f"timeout while waiting for state of resource {resource_id} to become "
            f"'{', '.join(self.expected)}' "
            f"(last state: '{last_state or ''}', timeout: {timeout:g}s)"
        )


def wait_for_status(
    resource_id: str,
    pending: Iterable[str],
    target: Iterable[str],
    refresh: StatusRefreshFunction[T],
    timeout: float,
    backoff: ExponentialBackoff = None,
    not_found_checks: int = None,
) -> Optional[T]:
    """
    Polls ``refresh`` until the resource reaches one of the ``target`` statuses.

    The first check happens immediately, subsequent checks are spaced out by ``backoff``. Polling
    continues while the status is in ``pending`` and stops:

    - with the last observed resource once the status is in ``target``
    - with ``None`` if the resource is gone and ``target`` is empty (e.g., waiting for a deletion)
    - with a ``NotFoundError`` if the resource is gone for more than ``not_found_checks``
      consecutive checks, but a target status is expected
    - with an ``UnexpectedStateError`` as soon as any other status is observed
    - with a ``WaitTimeoutError`` if ``timeout`` elapses while the status is still pending

    Exceptions raised by ``refresh`` (e.g., transport errors) are propagated immediately.

    :param resource_id: identifier of the resource, used for logging and error messages
    :param pending: statuses which cause polling to continue
    :param target: statuses which end polling successfully
    :param refresh: function returning the resource and its status, ``(None, "")`` if not found
    :param timeout: max duration to wait for (in seconds)
    :param backoff: the backoff between two checks, defaults to the configured status polling backoff
    :param not_found_checks: number of tolerated "not found" results, defaults to the configured value
    :return: the resource in its target status, or None if it was expected to disappear
    """
    pending = set(pending)
    target = set(target)
    backoff = backoff or ExponentialBackoff.for_status_polling()
    if not_found_checks is None:
        not_found_checks = config.STATUS_NOT_FOUND_CHECKS

    deadline = time.monotonic() + timeout
    last_state = None
    not_found_count = 0

    while True:
        resource, state = refresh()

        if resource is None:
            if not target:
                LOG.debug("Resource %s is gone", resource_id)
                return None

            not_found_count += 1
            if not_found_count > not_found_checks:
                raise NotFoundError(
                    f"couldn't find resource {resource_id} ({not_found_checks} retries)"
                )
        else:
            not_found_count = 0
            last_state = state

            if state in target:
                LOG.debug("Resource %s reached state %s", resource_id, state)
                return resource

            if state not in pending:
                raise UnexpectedStateError(resource_id, state, target)

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise WaitTimeoutError(resource_id, last_state, target, timeout)

        pause = backoff.next_pause(remaining)
        LOG.debug(
            "Waiting %.2fs before check %d of resource %s (state: %s, wanted: %s)",
            pause,
            backoff.attempts + 1,
            resource_id,
            last_state,
            target,
        )
        time.sleep(pause)
