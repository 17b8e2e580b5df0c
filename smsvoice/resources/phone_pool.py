import logging
from dataclasses import dataclass, field
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError

from smsvoice.resources.find import (
    RESOURCE_ERRORS,
    assert_single_value,
    is_not_found_error,
    paginate_items,
)
from smsvoice.resources.model import InvalidRequestError, ResourceModel, Timeouts
from smsvoice.resources.provider import (
    OperationStatus,
    ProgressEvent,
    ResourceProvider,
    ResourceRequest,
    register_resource_provider,
)
from smsvoice.utils.arns import get_iso_country_code_for_sender_id, is_sender_id, is_valid_arn
from smsvoice.utils.strings import client_token
from smsvoice.utils.sync import NotFoundError, wait_for_status
from smsvoice.utils.tagging import (
    ignore_default_tags,
    list_tags,
    merge_tags,
    to_tag_list,
    update_tags,
    validate_tags,
)

LOG = logging.getLogger(__name__)


class PoolStatus:
    CREATING = "CREATING"
    ACTIVE = "ACTIVE"
    DELETING = "DELETING"


class MessageType:
    TRANSACTIONAL = "TRANSACTIONAL"
    PROMOTIONAL = "PROMOTIONAL"


MESSAGE_TYPES = (MessageType.TRANSACTIONAL, MessageType.PROMOTIONAL)

# attributes which are applied with UpdatePool, mapped to the API parameter names
POOL_SETTINGS = {
    "deletion_protection_enabled": "DeletionProtectionEnabled",
    "opt_out_list_name": "OptOutListName",
    "self_managed_opt_outs_enabled": "SelfManagedOptOutsEnabled",
    "shared_routes_enabled": "SharedRoutesEnabled",
    "two_way_channel_enabled": "TwoWayEnabled",
    "two_way_channel_arn": "TwoWayChannelArn",
    "two_way_channel_role": "TwoWayChannelRole",
}


@dataclass
class PhonePoolProperties(ResourceModel):
    origination_identities: Optional[list[str]] = None
    message_type: Optional[str] = None
    deletion_protection_enabled: Optional[bool] = None
    opt_out_list_name: Optional[str] = None
    self_managed_opt_outs_enabled: Optional[bool] = None
    shared_routes_enabled: Optional[bool] = None
    two_way_channel_enabled: Optional[bool] = None
    two_way_channel_arn: Optional[str] = None
    two_way_channel_role: Optional[str] = None
    tags: Optional[dict[str, str]] = None
    timeouts: Timeouts = field(default_factory=Timeouts)

    # computed
    id: Optional[str] = None
    arn: Optional[str] = None
    status: Optional[str] = None
    tags_all: Optional[dict[str, str]] = None

    DEFAULTS = {
        "deletion_protection_enabled": False,
        "opt_out_list_name": "Default",
        "self_managed_opt_outs_enabled": False,
        "shared_routes_enabled": False,
        "two_way_channel_enabled": False,
    }


def validate_phone_pool(model: PhonePoolProperties) -> None:
    problems = []

    identities = model.origination_identities
    if identities is None:
        problems.append("origination_identities is required")
    elif not isinstance(identities, (list, tuple, set)):
        problems.append(
            f"origination_identities must be a list of ARNs, got {type(identities).__name__}"
        )
    elif not identities:
        problems.append("origination_identities must contain at least 1 element")
    else:
        for identity in identities:
            if not is_valid_arn(identity):
                problems.append(f"origination_identities: {identity!r} is not a valid ARN")

    if model.message_type is None:
        problems.append("message_type is required")
    elif model.message_type not in MESSAGE_TYPES:
        problems.append(
            f"message_type must be one of {', '.join(MESSAGE_TYPES)}, got {model.message_type!r}"
        )

    for name in ("two_way_channel_arn", "two_way_channel_role"):
        value = getattr(model, name)
        if value is None:
            continue
        if not is_valid_arn(value):
            problems.append(f"{name}: {value!r} is not a valid ARN")
        if not model.two_way_channel_enabled:
            problems.append(f"{name} requires two_way_channel_enabled to be set")

    problems.extend(validate_tags(model.tags))

    if problems:
        raise InvalidRequestError(problems)


#
# finders
#


def find_phone_pools(client, **kwargs) -> list[dict]:
    return paginate_items(client, "describe_pools", "Pools", **kwargs)


def find_phone_pool_by_id(client, pool_id: str) -> dict:
    return assert_single_value(find_phone_pools(client, PoolIds=[pool_id]), pool_id)


def find_pool_origination_identities(client, pool_id: str) -> list[str]:
    items = paginate_items(
        client, "list_pool_origination_identities", "OriginationIdentities", PoolId=pool_id
    )
    return sorted(item["OriginationIdentityArn"] for item in items)


def find_phone_number_by_id(client, phone_number_id: str) -> dict:
    items = paginate_items(
        client, "describe_phone_numbers", "PhoneNumbers", PhoneNumberIds=[phone_number_id]
    )
    return assert_single_value(items, phone_number_id)


def get_iso_country_code(client, origination_identity: str) -> str:
    """Returns the country code of a sender ID or phone number, as required by the pool operations."""
    if is_sender_id(origination_identity):
        return get_iso_country_code_for_sender_id(origination_identity)
    return find_phone_number_by_id(client, origination_identity)["IsoCountryCode"]


#
# status and waiters
#


def status_phone_pool(client, pool_id: str):
    def _refresh():
        try:
            pool = find_phone_pool_by_id(client, pool_id)
        except NotFoundError:
            return None, ""
        return pool, pool["Status"]

    return _refresh


def wait_phone_pool_active(client, pool_id: str, timeout: float) -> Optional[dict]:
    return wait_for_status(
        pool_id,
        pending=[PoolStatus.CREATING],
        target=[PoolStatus.ACTIVE],
        refresh=status_phone_pool(client, pool_id),
        timeout=timeout,
    )


def wait_phone_pool_deleted(client, pool_id: str, timeout: float) -> Optional[dict]:
    return wait_for_status(
        pool_id,
        pending=[PoolStatus.DELETING],
        target=[],
        refresh=status_phone_pool(client, pool_id),
        timeout=timeout,
    )


#
# conversion between model and API shapes
#


def update_pool_params(model: PhonePoolProperties) -> dict:
    params = {"PoolId": model.id}
    for name, parameter in POOL_SETTINGS.items():
        value = getattr(model, name)
        if value is not None:
            params[parameter] = value
    return params


def flatten_phone_pool(pool: dict, model: PhonePoolProperties) -> PhonePoolProperties:
    model.id = pool["PoolId"]
    model.arn = pool["PoolArn"]
    model.status = pool.get("Status")
    model.message_type = pool.get("MessageType")
    for name, parameter in POOL_SETTINGS.items():
        setattr(model, name, pool.get(parameter))
    return model


@register_resource_provider
class PhonePoolProvider(ResourceProvider[PhonePoolProperties]):
    TYPE = "aws_pinpointsmsvoicev2_phone_pool"
    LABEL = "Phone Pool"
    MODEL = PhonePoolProperties
    SCHEMA = {
        "typeName": TYPE,
        "description": "A pool of origination identities sharing routing configuration",
        "properties": {
            "id": {"type": "string"},
            "arn": {"type": "string"},
            "status": {"type": "string"},
            "origination_identities": {
                "type": "array",
                "uniqueItems": True,
                "minItems": 1,
                "items": {"type": "string", "format": "arn"},
            },
            "message_type": {"type": "string", "enum": list(MESSAGE_TYPES)},
            "deletion_protection_enabled": {"type": "boolean", "default": False},
            "opt_out_list_name": {"type": "string", "default": "Default"},
            "self_managed_opt_outs_enabled": {"type": "boolean", "default": False},
            "shared_routes_enabled": {"type": "boolean", "default": False},
            "two_way_channel_enabled": {"type": "boolean", "default": False},
            "two_way_channel_arn": {"type": "string", "format": "arn"},
            "two_way_channel_role": {"type": "string", "format": "arn"},
            "tags": {"type": "object", "additionalProperties": {"type": "string"}},
            "tags_all": {"type": "object", "additionalProperties": {"type": "string"}},
            "timeouts": {
                "type": "object",
                "properties": {
                    "create": {"type": "string", "default": "30m"},
                    "update": {"type": "string", "default": "30m"},
                    "delete": {"type": "string", "default": "30m"},
                },
            },
        },
        "required": ["origination_identities", "message_type"],
        "readOnlyProperties": [
            "/properties/id",
            "/properties/arn",
            "/properties/status",
            "/properties/tags_all",
        ],
        "createOnlyProperties": ["/properties/message_type"],
        "primaryIdentifier": ["/properties/id"],
    }

    def create(
        self,
        request: ResourceRequest[PhonePoolProperties],
    ) -> ProgressEvent[PhonePoolProperties]:
        model = request.desired_state.apply_defaults()

        try:
            validate_phone_pool(model)
        except InvalidRequestError as e:
            return self.failed("creating", model, e)

        client = request.aws_client_factory.pinpoint_sms_voice_v2
        model.tags_all = merge_tags(request.default_tags, model.tags)
        identities = sorted(set(model.origination_identities))

        # CreatePool requires exactly one origination identity and its country code,
        # the remaining identities are associated once the pool is active
        first_identity = identities[0]
        params = {
            "ClientToken": client_token(),
            "OriginationIdentity": first_identity,
            "MessageType": model.message_type,
            "DeletionProtectionEnabled": model.deletion_protection_enabled,
        }
        if model.tags_all:
            params["Tags"] = to_tag_list(model.tags_all)

        try:
            params["IsoCountryCode"] = get_iso_country_code(client, first_identity)
            response = client.create_pool(**params)
        except RESOURCE_ERRORS as e:
            return self.failed("creating", model, e)

        model.id = response["PoolId"]
        model.arn = response["PoolArn"]
        request.logger.debug("Created phone pool %s, waiting for it to become active", model.id)

        try:
            wait_phone_pool_active(client, model.id, model.timeouts.create)
        except RESOURCE_ERRORS as e:
            return self.failed("waiting for creation of", model, e)

        for identity in identities[1:]:
            try:
                associate_origination_identity(client, model.id, identity)
            except RESOURCE_ERRORS as e:
                return self.failed(f"associating origination identity ({identity}) with", model, e)

        try:
            client.update_pool(**update_pool_params(model))
            pool = find_phone_pool_by_id(client, model.id)
        except RESOURCE_ERRORS as e:
            return self.failed("updating", model, e)

        flatten_phone_pool(pool, model)
        model.origination_identities = identities
        return ProgressEvent(status=OperationStatus.SUCCESS, resource_model=model)

    def read(
        self,
        request: ResourceRequest[PhonePoolProperties],
    ) -> ProgressEvent[PhonePoolProperties]:
        model = request.desired_state
        client = request.aws_client_factory.pinpoint_sms_voice_v2

        try:
            pool = find_phone_pool_by_id(client, model.id)
            identities = find_pool_origination_identities(client, model.id)
            tags_all = list_tags(client, pool["PoolArn"])
        except RESOURCE_ERRORS as e:
            return self.failed("reading", model, e)

        flatten_phone_pool(pool, model)
        model.origination_identities = identities
        model.tags_all = tags_all
        model.tags = ignore_default_tags(tags_all, request.default_tags)
        return ProgressEvent(status=OperationStatus.SUCCESS, resource_model=model)

    def update(
        self,
        request: ResourceRequest[PhonePoolProperties],
    ) -> ProgressEvent[PhonePoolProperties]:
        model = request.desired_state.apply_defaults()
        previous = request.previous_state

        try:
            if previous is None:
                raise InvalidRequestError(["the previous state is required for an update"])
            previous.apply_defaults()
            validate_phone_pool(model)
            self.check_create_only_properties(request)
        except InvalidRequestError as e:
            return self.failed("updating", model, e)

        model.id = model.id or previous.id
        model.arn = model.arn or previous.arn
        client = request.aws_client_factory.pinpoint_sms_voice_v2

        # UpdatePool cannot clear these, an omitted value keeps the remote one
        for name in ("two_way_channel_arn", "two_way_channel_role"):
            if getattr(model, name) is None and getattr(previous, name) is not None:
                LOG.warning(
                    "%s was removed from the configuration of phone pool %s, "
                    "the pool keeps its current value",
                    name,
                    model.id,
                )

        try:
            if any(getattr(model, name) != getattr(previous, name) for name in POOL_SETTINGS):
                client.update_pool(**update_pool_params(model))

            old_identities = set(previous.origination_identities or [])
            new_identities = set(model.origination_identities)
            for identity in sorted(new_identities - old_identities):
                associate_origination_identity(client, model.id, identity)
            for identity in sorted(old_identities - new_identities):
                disassociate_origination_identity(client, model.id, identity)

            model.tags_all = merge_tags(request.default_tags, model.tags)
            update_tags(client, model.arn, previous.tags_all, model.tags_all)

            pool = find_phone_pool_by_id(client, model.id)
        except RESOURCE_ERRORS as e:
            return self.failed("updating", model, e)

        flatten_phone_pool(pool, model)
        model.origination_identities = sorted(new_identities)
        return ProgressEvent(status=OperationStatus.SUCCESS, resource_model=model)

    def delete(
        self,
        request: ResourceRequest[PhonePoolProperties],
    ) -> ProgressEvent[PhonePoolProperties]:
        model = request.desired_state
        client = request.aws_client_factory.pinpoint_sms_voice_v2

        try:
            client.delete_pool(PoolId=model.id)
        except ClientError as e:
            if is_not_found_error(e):
                LOG.debug("Phone pool %s is already gone", model.id)
                return ProgressEvent(status=OperationStatus.SUCCESS, resource_model=model)
            return self.failed("deleting", model, e)
        except BotoCoreError as e:
            return self.failed("deleting", model, e)

        try:
            wait_phone_pool_deleted(client, model.id, model.timeouts.delete)
        except RESOURCE_ERRORS as e:
            return self.failed("waiting for deletion of", model, e)

        return ProgressEvent(status=OperationStatus.SUCCESS, resource_model=model)

    def list(
        self,
        request: ResourceRequest[PhonePoolProperties],
    ) -> ProgressEvent[PhonePoolProperties]:
        client = request.aws_client_factory.pinpoint_sms_voice_v2

        try:
            pools = find_phone_pools(client)
        except RESOURCE_ERRORS as e:
            return self.failed("listing", None, e)

        return ProgressEvent(
            status=OperationStatus.SUCCESS,
            resource_models=[flatten_phone_pool(pool, PhonePoolProperties()) for pool in pools],
        )


def associate_origination_identity(client, pool_id: str, origination_identity: str) -> None:
    client.associate_origination_identity(
        PoolId=pool_id,
        OriginationIdentity=origination_identity,
        IsoCountryCode=get_iso_country_code(client, origination_identity),
        ClientToken=client_token(),
    )


def disassociate_origination_identity(client, pool_id: str, origination_identity: str) -> None:
    client.disassociate_origination_identity(
        PoolId=pool_id,
        OriginationIdentity=origination_identity,
        IsoCountryCode=get_iso_country_code(client, origination_identity),
        ClientToken=client_token(),
    )
