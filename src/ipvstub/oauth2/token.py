import logging
from typing import Optional
from typing import Union

from oidcmsg import oauth2
from oidcmsg.message import Message

from ipvstub.endpoint import Endpoint
from ipvstub.util import is_blank

logger = logging.getLogger(__name__)

AUTHORIZATION_CODE = "authorization_code"


class Token(Endpoint):
    request_cls = oauth2.AccessTokenRequest
    response_cls = oauth2.AccessTokenResponse
    error_cls = oauth2.TokenErrorResponse
    request_format = "urlencoded"
    request_placement = "body"
    response_format = "json"
    response_placement = "body"
    endpoint_name = "token_endpoint"
    name = "token"

    def __init__(self, server_get, expires_in=3600, **kwargs):
        Endpoint.__init__(self, server_get, **kwargs)
        self.expires_in = expires_in
        self.pre_validation.append(self._requested_token_error)

    def _requested_token_error(self, request, endpoint_context, **kwargs):
        _record = endpoint_context.error_injection.requested_token_error(request.get("code"))
        if _record is None:
            return None

        return self.error_cls(**_record.to_dict())

    def verify_request(self, request: Message) -> Optional[str]:
        """
        :return: An OAuth2 error code or None if the request is OK
        """
        _context = self.server_get("endpoint_context")

        _cid = request.get("client_id")
        if is_blank(_cid):
            if is_blank(request.get("client_assertion")) or is_blank(
                request.get("client_assertion_type")
            ):
                logger.warning("No client identification in token request")
                return "invalid_client"
        elif _cid not in _context.cdb:
            logger.warning("Unknown client: {}".format(_cid))
            return "invalid_client"

        _grant_type = request.get("grant_type") or ""
        if _grant_type.lower() != AUTHORIZATION_CODE:
            return "unsupported_grant_type"

        _code = _context.code_store.get(request.get("code"))
        if _code is None:
            logger.warning("Unknown authorization code")
            return "invalid_grant"

        _redirect_uri = request.get("redirect_uri")
        if is_blank(_redirect_uri):
            logger.warning("No redirect_uri in token request")
            return "invalid_request"

        if _redirect_uri != _code.redirect_uri:
            logger.warning("redirect_uri does not match the one the code was issued to")
            return "invalid_grant"

        return None

    def error_response(self, error: Union[str, Message]) -> dict:
        if isinstance(error, Message):
            _msg = error
        else:
            _msg = self.error_message(error)

        if _msg["error"] == "invalid_client":
            _status = 401
        else:
            _status = 400

        return {"response_args": _msg, "response_code": _status}

    def process_request(
        self,
        request: Optional[Union[Message, dict]] = None,
        http_info: Optional[dict] = None,
        **kwargs
    ):
        _resp = self.requested_error(request)
        if _resp:
            return self.error_response(_resp)

        _error = self.verify_request(request)
        if _error:
            return self.error_response(_error)

        _context = self.server_get("endpoint_context")
        # only one of several concurrent exchanges of a code gets it back
        _code = _context.code_store.redeem(request["code"])
        if _code is None:
            logger.warning("Authorization code already used")
            return self.error_response("invalid_grant")

        _token = _context.token_store.mint(_code.credential)
        logger.info("Access token issued for resource {}".format(_code.resource_id))

        response_args = self.response_cls(
            access_token=_token, token_type="Bearer", expires_in=self.expires_in
        )
        return {"response_args": response_args}
