import logging
from dataclasses import dataclass
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError

from smsvoice.resources.find import (
    RESOURCE_ERRORS,
    TooManyResultsError,
    assert_single_value,
    is_not_found_error,
    paginate_items,
)
from smsvoice.resources.model import InvalidRequestError, ResourceModel
from smsvoice.resources.provider import (
    OperationStatus,
    ProgressEvent,
    ResourceProvider,
    ResourceRequest,
    register_resource_provider,
)
from smsvoice.utils.strings import client_token
from smsvoice.utils.sync import NotFoundError
from smsvoice.utils.tagging import (
    ignore_default_tags,
    list_tags,
    merge_tags,
    to_tag_list,
    update_tags,
    validate_tags,
)

LOG = logging.getLogger(__name__)


@dataclass
class ProtectConfigurationProperties(ResourceModel):
    account_default: Optional[bool] = None
    deletion_protection_enabled: Optional[bool] = None
    tags: Optional[dict[str, str]] = None

    # computed
    id: Optional[str] = None
    arn: Optional[str] = None
    tags_all: Optional[dict[str, str]] = None

    DEFAULTS = {
        "account_default": False,
        "deletion_protection_enabled": False,
    }


def validate_protect_configuration(model: ProtectConfigurationProperties) -> None:
    problems = []
    for name in ("account_default", "deletion_protection_enabled"):
        value = getattr(model, name)
        if value is not None and not isinstance(value, bool):
            problems.append(f"{name} must be a boolean, got {value!r}")
    problems.extend(validate_tags(model.tags))
    if problems:
        raise InvalidRequestError(problems)


def find_protect_configurations(client, **kwargs) -> list[dict]:
    return paginate_items(
        client, "describe_protect_configurations", "ProtectConfigurations", **kwargs
    )


def find_protect_configuration_by_id(client, protect_configuration_id: str) -> dict:
    items = find_protect_configurations(
        client, ProtectConfigurationIds=[protect_configuration_id]
    )
    return assert_single_value(items, protect_configuration_id)


def flatten_protect_configuration(
    information: dict, model: ProtectConfigurationProperties
) -> ProtectConfigurationProperties:
    model.id = information["ProtectConfigurationId"]
    model.arn = information["ProtectConfigurationArn"]
    model.account_default = information.get("AccountDefault")
    model.deletion_protection_enabled = information.get("DeletionProtectionEnabled")
    return model


def set_account_default(client, protect_configuration_id: str, enabled: bool) -> None:
    if enabled:
        client.set_account_default_protect_configuration(
            ProtectConfigurationId=protect_configuration_id
        )
        return
    try:
        client.delete_account_default_protect_configuration()
    except ClientError as e:
        if not is_not_found_error(e):
            raise
        LOG.debug("No account default protect configuration to remove")


@register_resource_provider
class ProtectConfigurationProvider(ResourceProvider[ProtectConfigurationProperties]):
    TYPE = "aws_pinpointsmsvoicev2_protect_configuration"
    LABEL = "Protect Configuration"
    MODEL = ProtectConfigurationProperties
    SCHEMA = {
        "typeName": TYPE,
        "description": "An account or resource level policy governing message sending protections",
        "properties": {
            "id": {"type": "string"},
            "arn": {"type": "string"},
            "account_default": {"type": "boolean", "default": False},
            "deletion_protection_enabled": {"type": "boolean", "default": False},
            "tags": {"type": "object", "additionalProperties": {"type": "string"}},
            "tags_all": {"type": "object", "additionalProperties": {"type": "string"}},
        },
        "required": [],
        "readOnlyProperties": ["/properties/id", "/properties/arn", "/properties/tags_all"],
        "createOnlyProperties": [],
        "primaryIdentifier": ["/properties/id"],
    }

    def create(
        self,
        request: ResourceRequest[ProtectConfigurationProperties],
    ) -> ProgressEvent[ProtectConfigurationProperties]:
        model = request.desired_state.apply_defaults()

        try:
            validate_protect_configuration(model)
        except InvalidRequestError as e:
            return self.failed("creating", model, e)

        client = request.aws_client_factory.pinpoint_sms_voice_v2
        model.tags_all = merge_tags(request.default_tags, model.tags)

        params = {
            "ClientToken": client_token(),
            "DeletionProtectionEnabled": model.deletion_protection_enabled,
        }
        if model.tags_all:
            params["Tags"] = to_tag_list(model.tags_all)

        try:
            response = client.create_protect_configuration(**params)
        except RESOURCE_ERRORS as e:
            return self.failed("creating", model, e)

        model.id = response["ProtectConfigurationId"]
        model.arn = response["ProtectConfigurationArn"]

        try:
            if model.account_default:
                set_account_default(client, model.id, True)
            information = find_protect_configuration_by_id(client, model.id)
        except RESOURCE_ERRORS as e:
            return self.failed("creating", model, e)

        flatten_protect_configuration(information, model)
        return ProgressEvent(status=OperationStatus.SUCCESS, resource_model=model)

    def read(
        self,
        request: ResourceRequest[ProtectConfigurationProperties],
    ) -> ProgressEvent[ProtectConfigurationProperties]:
        model = request.desired_state
        client = request.aws_client_factory.pinpoint_sms_voice_v2

        try:
            information = find_protect_configuration_by_id(client, model.id)
            tags_all = list_tags(client, information["ProtectConfigurationArn"])
        except RESOURCE_ERRORS as e:
            return self.failed("reading", model, e)

        flatten_protect_configuration(information, model)
        model.tags_all = tags_all
        model.tags = ignore_default_tags(tags_all, request.default_tags)
        return ProgressEvent(status=OperationStatus.SUCCESS, resource_model=model)

    def update(
        self,
        request: ResourceRequest[ProtectConfigurationProperties],
    ) -> ProgressEvent[ProtectConfigurationProperties]:
        model = request.desired_state.apply_defaults()
        previous = request.previous_state

        try:
            if previous is None:
                raise InvalidRequestError(["the previous state is required for an update"])
            previous.apply_defaults()
            validate_protect_configuration(model)
        except InvalidRequestError as e:
            return self.failed("updating", model, e)

        model.id = model.id or previous.id
        model.arn = model.arn or previous.arn
        client = request.aws_client_factory.pinpoint_sms_voice_v2

        try:
            if model.deletion_protection_enabled != previous.deletion_protection_enabled:
                client.update_protect_configuration(
                    ProtectConfigurationId=model.id,
                    DeletionProtectionEnabled=model.deletion_protection_enabled,
                )

            if model.account_default != previous.account_default:
                set_account_default(client, model.id, model.account_default)

            model.tags_all = merge_tags(request.default_tags, model.tags)
            update_tags(client, model.arn, previous.tags_all, model.tags_all)

            information = find_protect_configuration_by_id(client, model.id)
        except RESOURCE_ERRORS as e:
            return self.failed("updating", model, e)

        flatten_protect_configuration(information, model)
        return ProgressEvent(status=OperationStatus.SUCCESS, resource_model=model)

    def delete(
        self,
        request: ResourceRequest[ProtectConfigurationProperties],
    ) -> ProgressEvent[ProtectConfigurationProperties]:
        model = request.desired_state
        client = request.aws_client_factory.pinpoint_sms_voice_v2

        try:
            # the account default cannot be deleted, release it first if this is still the default
            information = find_protect_configuration_by_id(client, model.id)
            if information.get("AccountDefault"):
                set_account_default(client, model.id, False)
            client.delete_protect_configuration(ProtectConfigurationId=model.id)
        except NotFoundError:
            LOG.debug("Protect configuration %s is already gone", model.id)
            return ProgressEvent(status=OperationStatus.SUCCESS, resource_model=model)
        except ClientError as e:
            if is_not_found_error(e):
                LOG.debug("Protect configuration %s is already gone", model.id)
                return ProgressEvent(status=OperationStatus.SUCCESS, resource_model=model)
            return self.failed("deleting", model, e)
        except (BotoCoreError, TooManyResultsError) as e:
            return self.failed("deleting", model, e)

        return ProgressEvent(status=OperationStatus.SUCCESS, resource_model=model)

    def list(
        self,
        request: ResourceRequest[ProtectConfigurationProperties],
    ) -> ProgressEvent[ProtectConfigurationProperties]:
        client = request.aws_client_factory.pinpoint_sms_voice_v2

        try:
            items = find_protect_configurations(client)
        except RESOURCE_ERRORS as e:
            return self.failed("listing", None, e)

        return ProgressEvent(
            status=OperationStatus.SUCCESS,
            resource_models=[
                flatten_protect_configuration(item, ProtectConfigurationProperties())
                for item in items
            ],
        )
