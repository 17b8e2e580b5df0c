"""Helpers for ARNs of End User Messaging SMS origination identities"""

import re
from typing import Optional, TypedDict

ARN_PATTERN = re.compile(
    r"^arn:(?P<partition>[^:]+):(?P<service>[^:]+):"
    r"(?P<region>[^:]*):(?P<account>[^:]*):(?P<resource>.+)$"
)

SENDER_ID_MARKER = ":sender-id/"


class ArnData(TypedDict):
    partition: str
    service: str
    region: str
    account: str
    resource: str


def parse_arn(arn: str) -> Optional[ArnData]:
    """Splits an ARN into its components, or returns None if the value is not an ARN."""
    if not isinstance(arn, str):
        return None
    match = ARN_PATTERN.match(arn)
    if not match:
        return None
    return ArnData(**match.groupdict())


def is_valid_arn(value: str) -> bool:
    return parse_arn(value) is not None


def is_sender_id(origination_identity: str) -> bool:
    """Whether the given origination identity ARN denotes a sender ID (rather than a phone number)."""
    return SENDER_ID_MARKER in origination_identity


def get_iso_country_code_for_sender_id(origination_identity: str) -> str:
    """
    Returns the ISO country code of a sender ID, which are the last two characters of its ARN,
    e.g. ``arn:aws:sms-voice:us-east-1:000000000000:sender-id/MySender/US``.
    """
    if not is_sender_id(origination_identity):
        raise ValueError(f"the origination identity is not a sender ID: {origination_identity}")
    return origination_identity[-2:]
