"""Lookup helpers shared by the resource providers"""
from typing import TypeVar

from botocore.exceptions import BotoCoreError, ClientError

from smsvoice.utils.sync import NotFoundError, WaitError

T = TypeVar("T")


class TooManyResultsError(Exception):
    def __init__(self, count: int, identifier: str):
        self.count = count
        super().__init__(f"expected exactly one result for {identifier}, got {count}")


# errors which a lifecycle handler reports as a failed operation
RESOURCE_ERRORS = (ClientError, BotoCoreError, WaitError, TooManyResultsError)


def is_not_found_error(error: Exception) -> bool:
    """Whether the given error is a ``ResourceNotFoundException`` returned by the service."""
    return (
        isinstance(error, ClientError)
        and error.response.get("Error", {}).get("Code") == "ResourceNotFoundException"
    )


def paginate_items(client, operation: str, result_key: str, **kwargs) -> list[dict]:
    """
    Collects the items of all pages of a paginated describe/list operation.
    A ``ResourceNotFoundException`` returned by the service is raised as ``NotFoundError``.
    """
    items = []
    paginator = client.get_paginator(operation)
    try:
        for page in paginator.paginate(**kwargs):
            items.extend(page.get(result_key) or [])
    except ClientError as e:
        if is_not_found_error(e):
            raise NotFoundError(str(e), last_error=e) from e
        raise
    return items


def assert_single_value(items: list[T], identifier: str) -> T:
    if not items:
        raise NotFoundError(f"no result found for {identifier}")
    if len(items) > 1:
        raise TooManyResultsError(len(items), identifier)
    return items[0]
