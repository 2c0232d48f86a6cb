from xplaino_client.config import AppSettings, ConfigurationError
from xplaino_client.http import ApiHttpError, RequestExecutor
from xplaino_client.models import Credentials, ErrorCode, OutcomeHandlers, RequestDescriptor
from xplaino_client.refresh import TokenRefreshCoordinator, TokenRefreshError
from xplaino_client.services import XplainoService, create_service
from xplaino_client.transport import CancellationToken

__version__ = "0.1.0"

__all__ = [
    "ApiHttpError",
    "AppSettings",
    "CancellationToken",
    "ConfigurationError",
    "Credentials",
    "ErrorCode",
    "OutcomeHandlers",
    "RequestDescriptor",
    "RequestExecutor",
    "TokenRefreshCoordinator",
    "TokenRefreshError",
    "XplainoService",
    "create_service",
]
