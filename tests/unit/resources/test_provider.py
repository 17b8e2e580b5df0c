from dataclasses import dataclass
from typing import Optional
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import EndpointConnectionError

from smsvoice.resources import provider
from smsvoice.resources.model import InvalidRequestError, ResourceModel
from smsvoice.resources.phone_pool import PhonePoolProvider
from smsvoice.resources.plugins import PhonePoolProviderPlugin, ProtectConfigurationProviderPlugin
from smsvoice.resources.protect_configuration import ProtectConfigurationProvider
from smsvoice.resources.provider import (
    HandlerErrorCode,
    NoResourceProvider,
    OperationStatus,
    ProgressEvent,
    ResourceProvider,
    ResourceProviderExecutor,
    get_error_code,
    property_name,
)
from smsvoice.utils.sync import NotFoundError, UnexpectedStateError, WaitTimeoutError

from .conftest import client_error

SAMPLE_TYPE = "test_sample_resource"


@dataclass
class SampleProperties(ResourceModel):
    name: Optional[str] = None
    kind: Optional[str] = None
    enabled: Optional[bool] = None
    id: Optional[str] = None

    DEFAULTS = {"enabled": False}


class SampleProvider(ResourceProvider[SampleProperties]):
    TYPE = SAMPLE_TYPE
    LABEL = "Sample"
    MODEL = SampleProperties
    SCHEMA = {
        "createOnlyProperties": ["/properties/kind"],
        "primaryIdentifier": ["/properties/id"],
    }

    def __init__(self):
        self.requests = []

    def create(self, request):
        self.requests.append(request)
        request.desired_state.id = "sample-1"
        return ProgressEvent(status=OperationStatus.SUCCESS, resource_model=request.desired_state)

    def read(self, request):
        self.requests.append(request)
        request.desired_state.name = "remote"
        return ProgressEvent(status=OperationStatus.SUCCESS, resource_model=request.desired_state)

    def delete(self, request):
        self.requests.append(request)
        return ProgressEvent(status=OperationStatus.SUCCESS, resource_model=request.desired_state)


@pytest.fixture
def sample_provider(monkeypatch):
    instance = SampleProvider()
    monkeypatch.setitem(provider.PUBLIC_REGISTRY, SAMPLE_TYPE, lambda: instance)
    return instance


@pytest.fixture
def executor():
    return ResourceProviderExecutor(client_factory=MagicMock(), default_tags={"team": "sms"})


def payload(action: str, desired_state: dict = None, previous_state: dict = None) -> dict:
    result = {
        "action": action,
        "resourceType": SAMPLE_TYPE,
        "region": "eu-west-1",
        "desiredState": desired_state or {},
        "callerCredentials": {
            "accessKeyId": "key",
            "secretAccessKey": "secret",
            "sessionToken": "token",
        },
    }
    if previous_state is not None:
        result["previousState"] = previous_state
    return result


class TestResourceProviderExecutor:
    def test_add_is_dispatched_to_create(self, executor, sample_provider):
        event = executor.execute(payload("Add", {"name": "sample"}))

        assert event.status == OperationStatus.SUCCESS
        assert event.resource_model.id == "sample-1"
        assert event.resource_model.name == "sample"
        assert len(sample_provider.requests) == 1

    def test_payload_conversion(self, executor, sample_provider):
        executor.execute(payload("Remove", {"id": "sample-1"}, previous_state={"name": "old"}))

        request = sample_provider.requests[0]
        executor.client_factory.assert_called_once_with(
            region_name="eu-west-1",
            aws_access_key_id="key",
            aws_secret_access_key="secret",
            aws_session_token="token",
        )
        assert request.aws_client_factory is executor.client_factory.return_value
        assert request.region_name == "eu-west-1"
        assert request.action == "Remove"
        assert request.desired_state == SampleProperties(id="sample-1")
        assert request.previous_state == SampleProperties(name="old")
        assert request.default_tags == {"team": "sms"}
        assert request.request_token

    def test_invalid_configuration(self, executor, sample_provider):
        event = executor.execute(payload("Add", {"name": "sample", "color": "blue"}))

        assert event.status == OperationStatus.FAILED
        assert event.error_code == HandlerErrorCode.InvalidRequest
        assert "unsupported argument: color" in event.message
        assert not sample_provider.requests

    def test_modify_without_update_handler(self, executor, sample_provider):
        event = executor.execute(payload("Modify", {"name": "new"}, previous_state={"name": "old"}))

        assert event.status == OperationStatus.SUCCESS
        assert event.resource_model.name == "old"

    def test_import_reads_and_applies_defaults(self, executor, sample_provider):
        event = executor.execute(payload("Import", {"id": "sample-1"}))

        assert event.status == OperationStatus.SUCCESS
        assert event.resource_model.name == "remote"
        assert event.resource_model.enabled is False

    def test_list_is_not_implemented(self, executor, sample_provider):
        with pytest.raises(NotImplementedError):
            executor.execute(payload("List"))

    def test_unknown_action(self, executor, sample_provider):
        with pytest.raises(NotImplementedError):
            executor.execute(payload("Replace"))

    def test_load_registered_providers(self, executor):
        assert isinstance(
            executor.load_resource_provider("aws_pinpointsmsvoicev2_phone_pool"), PhonePoolProvider
        )
        assert isinstance(
            executor.load_resource_provider("aws_pinpointsmsvoicev2_protect_configuration"),
            ProtectConfigurationProvider,
        )

    def test_load_provider_from_plugin(self, executor, monkeypatch):
        plugin_manager = MagicMock()
        plugin_manager.load.return_value.factory = SampleProvider
        monkeypatch.setattr(provider, "plugin_manager", plugin_manager)

        assert isinstance(executor.load_resource_provider("test_plugin_resource"), SampleProvider)
        plugin_manager.load.assert_called_once_with("test_plugin_resource")

    def test_unknown_resource_type(self, executor, monkeypatch):
        plugin_manager = MagicMock()
        plugin_manager.load.side_effect = ValueError("no plugin")
        monkeypatch.setattr(provider, "plugin_manager", plugin_manager)

        with pytest.raises(NoResourceProvider):
            executor.load_resource_provider("test_unknown_resource")

    def test_extract_primary_identifier(self):
        identifier = ResourceProviderExecutor.extract_primary_identifier(
            SampleProvider(), SampleProperties(id="sample-1")
        )

        assert identifier == "sample-1"


class TestResourceProvider:
    def test_failed_event(self):
        event = SampleProvider().failed(
            "creating", SampleProperties(id="sample-1"), client_error("ValidationException")
        )

        assert event.status == OperationStatus.FAILED
        assert event.error_code == HandlerErrorCode.ServiceError
        assert event.message.startswith("creating End User Messaging SMS Sample (sample-1): ")
        assert "ValidationException" in event.message

    def test_check_create_only_properties(self, create_request):
        request = create_request(
            SampleProperties(kind="b", name="new"),
            previous_state=SampleProperties(kind="a", name="old"),
        )

        with pytest.raises(InvalidRequestError, match="changing kind requires replacement"):
            SampleProvider().check_create_only_properties(request)

    def test_create_only_properties_unchanged(self, create_request):
        request = create_request(
            SampleProperties(kind="a", name="new"),
            previous_state=SampleProperties(kind="a", name="old"),
        )

        SampleProvider().check_create_only_properties(request)


@pytest.mark.parametrize(
    "error,expected",
    [
        (NotFoundError("gone"), HandlerErrorCode.NotFound),
        (InvalidRequestError(["bad"]), HandlerErrorCode.InvalidRequest),
        (WaitTimeoutError("id", "CREATING", ["ACTIVE"], 1), HandlerErrorCode.Timeout),
        (UnexpectedStateError("id", "FAILED", ["ACTIVE"]), HandlerErrorCode.NotStabilized),
        (client_error("ThrottlingException"), HandlerErrorCode.ServiceError),
        (EndpointConnectionError(endpoint_url="https://test"), HandlerErrorCode.ServiceError),
        (KeyError("PoolId"), HandlerErrorCode.InternalFailure),
    ],
)
def test_get_error_code(error, expected):
    assert get_error_code(error) == expected


def test_property_name():
    assert property_name("/properties/message_type") == "message_type"


def test_plugins_load_providers():
    phone_pool_plugin = PhonePoolProviderPlugin()
    phone_pool_plugin.load()
    protect_configuration_plugin = ProtectConfigurationProviderPlugin()
    protect_configuration_plugin.load()

    assert phone_pool_plugin.factory is PhonePoolProvider
    assert protect_configuration_plugin.factory is ProtectConfigurationProvider


class TestMalformedConfiguration:
    """Malformed configuration is reported as a failed event before any remote call."""

    @pytest.fixture
    def sms_client(self, executor):
        return executor.client_factory.return_value.pinpoint_sms_voice_v2

    @staticmethod
    def phone_pool_payload(**desired_state) -> dict:
        state = {
            "origination_identities": [
                "arn:aws:sms-voice:us-east-1:000000000000:sender-id/MySender/GB"
            ],
            "message_type": "TRANSACTIONAL",
        }
        state.update(desired_state)
        return {
            "action": "Add",
            "resourceType": "aws_pinpointsmsvoicev2_phone_pool",
            "region": "us-east-1",
            "desiredState": state,
        }

    @staticmethod
    def protect_configuration_payload(**desired_state) -> dict:
        return {
            "action": "Add",
            "resourceType": "aws_pinpointsmsvoicev2_protect_configuration",
            "region": "us-east-1",
            "desiredState": desired_state,
        }

    @pytest.mark.parametrize(
        "desired_state,problem",
        [
            ({"timeouts": 5}, "timeouts must be a block, got int"),
            ({"timeouts": "30m"}, "timeouts must be a block, got str"),
            ({"tags": ["a"]}, "tags must be a map of strings, got list"),
            ({"tags": {"env": 1}}, "tags: key 'env' must map to a string"),
            (
                {"origination_identities": "arn:aws:sms-voice:us-east-1:000000000000:pool/p"},
                "origination_identities must be a list of ARNs, got str",
            ),
        ],
    )
    def test_phone_pool(self, executor, sms_client, desired_state, problem):
        event = executor.execute(self.phone_pool_payload(**desired_state))

        assert event.status == OperationStatus.FAILED
        assert event.error_code == HandlerErrorCode.InvalidRequest
        assert problem in event.message
        sms_client.create_pool.assert_not_called()

    @pytest.mark.parametrize(
        "desired_state,problem",
        [
            ({"tags": ["a"]}, "tags must be a map of strings, got list"),
            ({"account_default": "yes"}, "account_default must be a boolean, got 'yes'"),
        ],
    )
    def test_protect_configuration(self, executor, sms_client, desired_state, problem):
        event = executor.execute(self.protect_configuration_payload(**desired_state))

        assert event.status == OperationStatus.FAILED
        assert event.error_code == HandlerErrorCode.InvalidRequest
        assert problem in event.message
        sms_client.create_protect_configuration.assert_not_called()

    def test_desired_state_is_not_an_object(self, executor, sms_client):
        payload = self.protect_configuration_payload()
        payload["desiredState"] = ["account_default"]

        event = executor.execute(payload)

        assert event.status == OperationStatus.FAILED
        assert event.error_code == HandlerErrorCode.InvalidRequest
        assert "expected an object, got list" in event.message
