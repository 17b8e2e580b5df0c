from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum, auto
from logging import Logger
from typing import Any, Generic, Optional, Type, TypedDict, TypeVar

from botocore.exceptions import BotoCoreError, ClientError
from plux import Plugin, PluginManager

from smsvoice import config
from smsvoice.aws.connect import ServiceLevelClientFactory, connect_to
from smsvoice.constants import SERVICE_LABEL
from smsvoice.logging.setup import setup_logging_once
from smsvoice.resources.model import InvalidRequestError, ResourceModel
from smsvoice.utils.sync import NotFoundError, UnexpectedStateError, WaitTimeoutError

LOG = logging.getLogger(__name__)

Properties = TypeVar("Properties", bound=ResourceModel)

PUBLIC_REGISTRY: dict[str, Type[ResourceProvider]] = {}


class OperationStatus(Enum):
    PENDING = auto()
    IN_PROGRESS = auto()
    SUCCESS = auto()
    FAILED = auto()


class HandlerErrorCode(str, Enum):
    NotFound = "NotFound"
    InvalidRequest = "InvalidRequest"
    NotStabilized = "NotStabilized"
    Timeout = "Timeout"
    ServiceError = "ServiceError"
    InternalFailure = "InternalFailure"


@dataclass
class ProgressEvent(Generic[Properties]):
    status: OperationStatus
    resource_model: Optional[Properties] = None
    resource_models: Optional[list[Properties]] = None

    message: str = ""
    error_code: Optional[HandlerErrorCode] = None
    custom_context: dict = field(default_factory=dict)


class Credentials(TypedDict):
    accessKeyId: str
    secretAccessKey: str
    sessionToken: str


class ResourceProviderPayload(TypedDict, total=False):
    action: str
    resourceType: str
    region: str
    desiredState: dict
    previousState: Optional[dict]
    callerCredentials: Credentials
    callbackContext: dict


@dataclass
class ResourceRequest(Generic[Properties]):
    aws_client_factory: ServiceLevelClientFactory
    request_token: str
    region_name: Optional[str]
    action: str

    desired_state: Properties

    resource_type: str

    logger: Logger

    custom_context: dict = field(default_factory=dict)

    previous_state: Optional[Properties] = None
    default_tags: dict[str, str] = field(default_factory=dict)


class ResourceProviderPlugin(Plugin):
    """
    Base class for resource provider plugins.
    """

    namespace = "smsvoice.resource_providers"

    factory: Optional[Type[ResourceProvider]]


class ResourceProvider(Generic[Properties]):
    """
    This provides the interface of the lifecycle handlers of a resource type. Handlers are dispatched by
    the ``ResourceProviderExecutor`` and always answer with a ``ProgressEvent``.
    """

    TYPE: str
    LABEL: str
    SCHEMA: dict
    MODEL: Type[Properties]

    def create(self, request: ResourceRequest[Properties]) -> ProgressEvent[Properties]:
        raise NotImplementedError

    def read(self, request: ResourceRequest[Properties]) -> ProgressEvent[Properties]:
        raise NotImplementedError

    def update(self, request: ResourceRequest[Properties]) -> ProgressEvent[Properties]:
        raise NotImplementedError

    def delete(self, request: ResourceRequest[Properties]) -> ProgressEvent[Properties]:
        raise NotImplementedError

    def list(self, request: ResourceRequest[Properties]) -> ProgressEvent[Properties]:
        raise NotImplementedError

    def import_resource(self, request: ResourceRequest[Properties]) -> ProgressEvent[Properties]:
        """
        Imports an existing resource by its identifier. The desired state only carries the ``id``, all
        other attributes are read from the remote resource.
        """
        event = self.read(request)
        if event.status == OperationStatus.SUCCESS and event.resource_model is not None:
            event.resource_model.apply_defaults()
        return event

    #
    # helpers shared by the providers
    #

    def label(self, resource_id: Optional[str]) -> str:
        return f"{SERVICE_LABEL} {self.LABEL} ({resource_id or ''})"

    def failed(
        self, action: str, model: Optional[Properties], error: Exception
    ) -> ProgressEvent[Properties]:
        """
        Turns an error into a FAILED progress event with a labelled message, e.g.
        ``creating End User Messaging SMS Phone Pool (pool-123): <cause>``.
        """
        resource_id = getattr(model, "id", None)
        message = f"{action} {self.label(resource_id)}: {error}"
        error_code = get_error_code(error)
        if error_code in (HandlerErrorCode.ServiceError, HandlerErrorCode.InternalFailure):
            LOG.warning(message, exc_info=LOG.isEnabledFor(logging.DEBUG))
        else:
            LOG.info(message)
        return ProgressEvent(
            status=OperationStatus.FAILED,
            resource_model=model,
            message=message,
            error_code=error_code,
        )

    def check_create_only_properties(self, request: ResourceRequest[Properties]) -> None:
        """Raises an ``InvalidRequestError`` if an attribute changed that can only be set on creation."""
        if request.previous_state is None:
            return
        changed = []
        for pointer in self.SCHEMA.get("createOnlyProperties", []):
            name = property_name(pointer)
            if getattr(request.previous_state, name) != getattr(request.desired_state, name):
                changed.append(name)
        if changed:
            raise InvalidRequestError(
                [f"changing {name} requires replacement of the resource" for name in changed]
            )


def register_resource_provider(cls: Type[ResourceProvider]) -> Type[ResourceProvider]:
    """Class decorator adding a resource provider to the in-process registry."""
    PUBLIC_REGISTRY[cls.TYPE] = cls
    return cls


def property_name(pointer: str) -> str:
    """Resolves a schema pointer like ``/properties/message_type`` to the attribute name."""
    return pointer.replace("/properties", "").strip("/")


def get_error_code(error: Exception) -> HandlerErrorCode:
    if isinstance(error, NotFoundError):
        return HandlerErrorCode.NotFound
    if isinstance(error, InvalidRequestError):
        return HandlerErrorCode.InvalidRequest
    if isinstance(error, WaitTimeoutError):
        return HandlerErrorCode.Timeout
    if isinstance(error, UnexpectedStateError):
        return HandlerErrorCode.NotStabilized
    if isinstance(error, (ClientError, BotoCoreError)):
        return HandlerErrorCode.ServiceError
    return HandlerErrorCode.InternalFailure


class NoResourceProvider(Exception):
    pass


class ResourceProviderExecutor:
    """
    Point of abstraction between the orchestrating host and the resource providers. Converts the host
    payload into a ``ResourceRequest`` and dispatches it to the lifecycle handler of the action.
    """

    def __init__(
        self,
        *,
        client_factory=None,
        default_tags: Optional[dict[str, str]] = None,
    ):
        setup_logging_once()
        self.client_factory = client_factory or connect_to
        self.default_tags = config.DEFAULT_TAGS if default_tags is None else default_tags

    def execute(self, payload: ResourceProviderPayload) -> ProgressEvent:
        resource_provider = self.load_resource_provider(payload["resourceType"])
        try:
            request = self.convert_payload(resource_provider, payload)
        except InvalidRequestError as e:
            return ProgressEvent(
                status=OperationStatus.FAILED,
                message=f"invalid {payload['resourceType']} configuration: {e}",
                error_code=HandlerErrorCode.InvalidRequest,
            )
        return self.execute_action(resource_provider, request)

    def convert_payload(
        self, resource_provider: ResourceProvider, payload: ResourceProviderPayload
    ) -> ResourceRequest:
        model_cls = resource_provider.MODEL
        credentials = payload.get("callerCredentials") or {}
        client_factory = self.client_factory(
            region_name=payload.get("region"),
            aws_access_key_id=credentials.get("accessKeyId"),
            aws_secret_access_key=credentials.get("secretAccessKey"),
            aws_session_token=credentials.get("sessionToken"),
        )

        request = ResourceRequest(
            aws_client_factory=client_factory,
            request_token=str(uuid.uuid4()),
            region_name=payload.get("region"),
            action=payload["action"],
            desired_state=model_cls.from_dict(payload.get("desiredState")),
            resource_type=payload["resourceType"],
            logger=logging.getLogger(f"smsvoice.resources.{payload['resourceType']}"),
            custom_context=payload.get("callbackContext") or {},
            default_tags=dict(self.default_tags),
        )

        if previous_state := payload.get("previousState"):
            request.previous_state = model_cls.from_dict(previous_state)

        return request

    def execute_action(
        self, resource_provider: ResourceProvider, request: ResourceRequest[Properties]
    ) -> ProgressEvent[Properties]:
        if LOG.isEnabledFor(logging.DEBUG):
            LOG.debug(
                'Executing action "%s" for resource type "%s" with desired state %s',
                request.action,
                request.resource_type,
                request.desired_state.to_dict(),
            )

        match request.action:
            case "Add":
                event = resource_provider.create(request)
            case "Modify":
                try:
                    event = resource_provider.update(request)
                except NotImplementedError:
                    LOG.warning('Unable to update resource type "%s"', request.resource_type)
                    event = ProgressEvent(
                        status=OperationStatus.SUCCESS, resource_model=request.previous_state
                    )
            case "Remove":
                event = resource_provider.delete(request)
            case "Read":
                event = resource_provider.read(request)
            case "Import":
                event = resource_provider.import_resource(request)
            case "List":
                event = resource_provider.list(request)
            case _:
                raise NotImplementedError(request.action)

        if event.status == OperationStatus.SUCCESS and event.resource_model is not None:
            LOG.debug(
                'Action "%s" for resource type "%s" succeeded, id: %s',
                request.action,
                request.resource_type,
                self.extract_primary_identifier(resource_provider, event.resource_model),
            )
        return event

    def load_resource_provider(self, resource_type: str) -> ResourceProvider:
        if resource_type in PUBLIC_REGISTRY:
            return PUBLIC_REGISTRY[resource_type]()

        try:
            plugin = plugin_manager.load(resource_type)
            return plugin.factory()
        except Exception:
            LOG.warning(
                "Failed to load resource type %s as a ResourceProvider.",
                resource_type,
                exc_info=LOG.isEnabledFor(logging.DEBUG),
            )
            raise NoResourceProvider(resource_type)

    @staticmethod
    def extract_primary_identifier(resource_provider: ResourceProvider, model: Any) -> str:
        primary_id_paths = resource_provider.SCHEMA["primaryIdentifier"]
        return "-".join(str(getattr(model, property_name(path))) for path in primary_id_paths)


plugin_manager = PluginManager(ResourceProviderPlugin.namespace)
