from typing import Optional, Type

from smsvoice.resources.provider import ResourceProvider, ResourceProviderPlugin


class PhonePoolProviderPlugin(ResourceProviderPlugin):
    name = "aws_pinpointsmsvoicev2_phone_pool"

    def __init__(self):
        self.factory: Optional[Type[ResourceProvider]] = None

    def load(self):
        from smsvoice.resources.phone_pool import PhonePoolProvider

        self.factory = PhonePoolProvider


class ProtectConfigurationProviderPlugin(ResourceProviderPlugin):
    name = "aws_pinpointsmsvoicev2_protect_configuration"

    def __init__(self):
        self.factory: Optional[Type[ResourceProvider]] = None

    def load(self):
        from smsvoice.resources.protect_configuration import ProtectConfigurationProvider

        self.factory = ProtectConfigurationProvider
