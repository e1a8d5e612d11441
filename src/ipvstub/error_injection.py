"""
Lets a test scenario ask for a specific OAuth2 error at either the
authorization or the token endpoint.

The request parameters carrying the wish are::

    requested_oauth_error=access_denied
    requested_oauth_error_description=Some description
    requested_oauth_error_endpoint=auth|token|none

An 'auth' wish is acted upon directly. A 'token' wish is remembered under
the authorization code that gets issued and used when that code turns up at
the token endpoint.
"""
import logging
from typing import Optional
from typing import Union

from oidcmsg.message import Message

from ipvstub.store import Database
from ipvstub.util import is_blank

logger = logging.getLogger(__name__)

AUTH = "auth"
TOKEN = "token"
NONE = "none"

REQUESTED_OAUTH_ERROR = "requested_oauth_error"
REQUESTED_OAUTH_ERROR_DESCRIPTION = "requested_oauth_error_description"
REQUESTED_OAUTH_ERROR_ENDPOINT = "requested_oauth_error_endpoint"


class ErrorInjectionRecord(object):
    def __init__(self, error: str, error_description: Optional[str] = "", endpoint: str = NONE):
        self.error = error
        self.error_description = error_description or ""
        self.endpoint = endpoint or NONE

    def targets(self, endpoint: str) -> bool:
        return self.endpoint == endpoint and self.error != NONE

    def to_dict(self):
        _res = {"error": self.error}
        if self.error_description:
            _res["error_description"] = self.error_description
        return _res

    @classmethod
    def from_request(cls, request: Union[Message, dict]) -> Optional["ErrorInjectionRecord"]:
        _error = request.get(REQUESTED_OAUTH_ERROR)
        _endpoint = request.get(REQUESTED_OAUTH_ERROR_ENDPOINT)
        if is_blank(_error) or is_blank(_endpoint):
            return None

        return cls(
            error=_error.strip(),
            error_description=request.get(REQUESTED_OAUTH_ERROR_DESCRIPTION, ""),
            endpoint=_endpoint.strip().lower(),
        )


class ErrorInjectionRegistry(Database):
    def requested_auth_error(
        self, request: Union[Message, dict]
    ) -> Optional[ErrorInjectionRecord]:
        """
        Errors for the authorization endpoint are never stored, they are
        read from the request they apply to.
        """
        _record = ErrorInjectionRecord.from_request(request)
        if _record and _record.targets(AUTH):
            logger.info("Injecting '{}' at the authorization endpoint".format(_record.error))
            return _record
        return None

    def persist(self, code: str, request: Union[Message, dict]) -> bool:
        _record = ErrorInjectionRecord.from_request(request)
        if _record is None or not _record.targets(TOKEN):
            return False

        self.set(code, _record)
        logger.debug("Registered '{}' for the token endpoint".format(_record.error))
        return True

    def requested_token_error(self, code: Optional[str]) -> Optional[ErrorInjectionRecord]:
        """Consulted once, the record is gone afterwards."""
        if is_blank(code):
            return None

        _record = self.pop(code)
        if _record and _record.targets(TOKEN):
            logger.info("Injecting '{}' at the token endpoint".format(_record.error))
            return _record
        return None
