"""Auth0 Management API directory access.

- DirectoryHttpClient / APIRequest: authenticated HTTP calls with retries
- error_from_status_code / ErrorResponse: failure mapping
- UserReaderWriter: identity resolution, disambiguation and metadata updates
"""

from lfx_auth.directory.error_response import ErrorResponse
from lfx_auth.directory.http_client import (
    APICallError,
    APIRequest,
    DirectoryHttpClient,
    error_from_status_code,
)
from lfx_auth.directory.users import UserReaderWriter, create_user_reader_writer

__all__ = [
    "APICallError",
    "APIRequest",
    "DirectoryHttpClient",
    "ErrorResponse",
    "UserReaderWriter",
    "create_user_reader_writer",
    "error_from_status_code",
]
