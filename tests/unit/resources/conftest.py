import logging
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from smsvoice.resources.provider import ResourceRequest

ACCOUNT_ID = "000000000000"
REGION = "us-east-1"


def phone_number_arn(phone_number_id: str) -> str:
    return f"arn:aws:sms-voice:{REGION}:{ACCOUNT_ID}:phone-number/{phone_number_id}"


def sender_id_arn(sender_id: str, country: str) -> str:
    return f"arn:aws:sms-voice:{REGION}:{ACCOUNT_ID}:sender-id/{sender_id}/{country}"


def client_error(code: str, operation: str = "Operation", message: str = "error") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


def not_found_error(operation: str = "Operation") -> ClientError:
    return client_error("ResourceNotFoundException", operation, "resource not found")


@pytest.fixture
def sms_client():
    """
    A mocked pinpoint-sms-voice-v2 client. Paginated operations answer from ``client.pages``, which maps
    an operation name to either a list of pages, or a function receiving the request parameters and
    returning the pages.
    """
    client = MagicMock()
    client.pages = {}

    def _get_paginator(operation: str):
        paginator = MagicMock()

        def _paginate(**kwargs):
            pages = client.pages.get(operation, [{}])
            if callable(pages):
                return pages(**kwargs)
            return pages

        paginator.paginate.side_effect = _paginate
        return paginator

    client.get_paginator.side_effect = _get_paginator
    client.list_tags_for_resource.return_value = {"Tags": []}
    return client


@pytest.fixture
def create_request(sms_client):
    def _create(desired_state, previous_state=None, action="Add", default_tags=None):
        client_factory = MagicMock()
        client_factory.pinpoint_sms_voice_v2 = sms_client
        return ResourceRequest(
            aws_client_factory=client_factory,
            request_token="token-1",
            region_name=REGION,
            action=action,
            desired_state=desired_state,
            resource_type="test",
            logger=logging.getLogger("smsvoice.tests"),
            previous_state=previous_state,
            default_tags=default_tags or {},
        )

    return _create
