"""Clients for the Safe transaction APIs."""

from .alt_api import AltAPI
from .api_wrapper import SafeAPIMode, SafeApiWrapper
from .base_api import BaseApi, SafeAPI
from .classic_api import ClassicAPI
from .constants import MULTISEND_CALL_ONLY

__all__ = [
    "AltAPI",
    "BaseApi",
    "ClassicAPI",
    "MULTISEND_CALL_ONLY",
    "SafeAPI",
    "SafeAPIMode",
    "SafeApiWrapper",
]
