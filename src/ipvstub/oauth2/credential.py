import logging
from typing import Optional
from typing import Union

from oidcmsg.message import Message
from oidcmsg.oauth2 import ResponseMessage

from ipvstub.endpoint import Endpoint
from ipvstub.util import is_blank

logger = logging.getLogger(__name__)


def bearer_token(request: Union[Message, dict], http_info: Optional[dict] = None) -> str:
    """
    The access token is picked from the Authorization header, and if not
    there, from the access_token parameter.
    """
    if http_info:
        _headers = http_info.get("headers") or {}
        _authz = _headers.get("authorization") or _headers.get("Authorization")
        if _authz:
            try:
                _type, _token = _authz.split(" ", 1)
            except ValueError:
                return ""
            if _type.lower() == "bearer":
                return _token.strip()
            return ""

    return request.get("access_token", "") if request else ""


class CredentialRetrieval(Endpoint):
    request_cls = Message
    response_cls = Message
    error_cls = ResponseMessage
    request_format = "urlencoded"
    response_format = "json"
    response_placement = "body"
    endpoint_name = "credential_endpoint"
    name = "credential"

    def process_request(
        self,
        request: Optional[Union[Message, dict]] = None,
        http_info: Optional[dict] = None,
        **kwargs
    ):
        _token = bearer_token(request, http_info)
        if is_blank(_token):
            logger.warning("No access token in credential request")
            return self._invalid_token()

        _credential = self.server_get("endpoint_context").token_store.get(_token)
        if _credential is None:
            logger.warning("Unknown access token")
            return self._invalid_token()

        logger.info("Returning credential {}".format(_credential.resource_id))
        return {"response_args": _credential.to_dict()}

    def _invalid_token(self):
        return {
            "response_args": self.error_message("invalid_token"),
            "response_code": 401,
            "http_headers": [("WWW-Authenticate", 'Bearer error="invalid_token"')],
        }
