import json
import logging
from typing import Optional
from typing import Union
from urllib.parse import unquote

from oidcmsg import oauth2
from oidcmsg.message import Message

from ipvstub import TEXT_PLAIN
from ipvstub.endpoint import Endpoint
from ipvstub.exception import InvalidPayload
from ipvstub.exception import RedirectURIError
from ipvstub.exception import RequestObjectError
from ipvstub.gpg45 import GPG45Error
from ipvstub.gpg45 import display_flags
from ipvstub.gpg45 import verify_gpg45
from ipvstub.request_object import INVALID_REQUEST_OBJECT
from ipvstub.store import Credential
from ipvstub.util import in_shared_domain
from ipvstub.util import is_blank

logger = logging.getLogger(__name__)

SHARED_CLAIMS = "shared_claims"
JSON_PAYLOAD = "json_payload"
RESOURCE_ID = "resourceId"

VERIFIED_REQUEST = "__verified_request"
REQUEST_OBJECT_ERROR = "__request_object_error"

UNTRUSTED_REDIRECT = (
    "redirect_uri param provided does not match any of the redirect_uri values configured"
)

# Parameters carried from the confirmation page to the finalize endpoint
FORWARDED_PARAMS = ["client_id", "redirect_uri", "state", "request", "scope"]


def verify_uri(endpoint_context, request: Union[dict, Message]) -> str:
    """
    The redirect URI must either be registered for the client or point to
    a host in the shared test domain.

    :param endpoint_context: An EndpointContext instance
    :param request: The authorization request
    :return: The redirect URI
    :raises RedirectURIError: If the redirect URI can not be trusted
    """
    _uri = request.get("redirect_uri")
    if is_blank(_uri):
        raise RedirectURIError("Missing redirect_uri")

    if in_shared_domain(_uri, endpoint_context.shared_redirect_domain):
        return _uri

    _cid = request.get("client_id")
    if is_blank(_cid):
        raise RedirectURIError("No client_id provided")

    client_info = endpoint_context.cdb.get(_cid)
    if client_info is None:
        raise RedirectURIError("Unknown client: {}".format(_cid))

    _redirect_uri = unquote(_uri)
    for _item in client_info.get("redirect_uris", []):
        if unquote(_item) == _redirect_uri:
            return _uri

    raise RedirectURIError("Doesn't match any registered uris")


class Authorization(Endpoint):
    request_cls = oauth2.AuthorizationRequest
    response_cls = oauth2.AuthorizationResponse
    error_cls = oauth2.AuthorizationErrorResponse
    request_format = "urlencoded"
    response_format = "urlencoded"
    response_placement = "url"
    endpoint_name = "authorization_endpoint"
    name = "authorization"

    def __init__(self, server_get, template="authorize.html", **kwargs):
        Endpoint.__init__(self, server_get, **kwargs)
        self.template = template
        self.post_parse_request.append(self._unpack_request_object)
        self.pre_validation.append(self._requested_auth_error)

    def _unpack_request_object(self, request, endpoint_context, **kwargs):
        _jwt = request.get("request")
        if not _jwt:
            return request

        try:
            _claims = endpoint_context.request_object_codec.decode(
                _jwt, request.get("client_id")
            )
        except RequestObjectError as err:
            logger.warning("Request object could not be used: {}".format(err))
            request[REQUEST_OBJECT_ERROR] = INVALID_REQUEST_OBJECT
            return request

        # The protected info overwrites the non-protected
        for k, v in _claims.items():
            request[k] = v

        request[VERIFIED_REQUEST] = _claims
        return request

    def _requested_auth_error(self, request, endpoint_context, **kwargs):
        _record = endpoint_context.error_injection.requested_auth_error(request)
        if _record is None:
            return None

        return self.error_message(
            _record.error, _record.error_description, state=request.get("state")
        )

    def redirect_uri_error(self, err: RedirectURIError) -> dict:
        logger.warning("Untrusted redirect URI: {}".format(err))
        return {
            "http_response": UNTRUSTED_REDIRECT,
            "response_code": 400,
            "content_type": TEXT_PLAIN,
        }

    def error_redirect(self, redirect_uri: str, error: Union[str, Message], request, **kwargs):
        if isinstance(error, Message):
            _msg = error
        else:
            _msg = self.error_message(error, state=request.get("state"), **kwargs)

        logger.info("Redirecting with error '{}'".format(_msg["error"]))
        return {"response_args": _msg, "return_uri": redirect_uri}

    def shared_claims(self, request) -> dict:
        if REQUEST_OBJECT_ERROR in request or VERIFIED_REQUEST not in request:
            return {}

        _claims = request.get(SHARED_CLAIMS)
        if isinstance(_claims, dict):
            return _claims
        return {}

    def verify_request(self, request) -> Optional[str]:
        """
        Protocol checks done after the redirect URI has been found to be
        trustworthy.

        :return: An OAuth2 error code or None
        """
        if " ".join(request.get("response_type", [])) != "code":
            return "unsupported_response_type"

        _cid = request.get("client_id")
        if is_blank(_cid) or _cid not in self.server_get("endpoint_context").cdb:
            return "invalid_client"

        return None

    def render_confirmation(self, request) -> str:
        _context = self.server_get("endpoint_context")

        if REQUEST_OBJECT_ERROR in request:
            _shared = request[REQUEST_OBJECT_ERROR]
        elif VERIFIED_REQUEST in request:
            _shared = json.dumps(self.shared_claims(request), indent=2)
        else:
            _shared = None

        _hidden = {}
        for param in FORWARDED_PARAMS:
            _val = request.get(param)
            if isinstance(_val, list):
                _val = " ".join(_val)
            if _val:
                _hidden[param] = _val
        _hidden["response_type"] = "code"

        args = {
            "shared_claims": _shared,
            "hidden": _hidden,
            "action": _context.get_endpoint("finalize").full_path,
            "cri_type": _context.cri_type,
        }
        args.update(display_flags(_context.cri_type))
        return _context.template_handler.render(self.template, **args)

    def process_request(
        self,
        request: Optional[Union[Message, dict]] = None,
        http_info: Optional[dict] = None,
        **kwargs
    ):
        _context = self.server_get("endpoint_context")
        try:
            redirect_uri = verify_uri(_context, request)
        except RedirectURIError as err:
            return self.redirect_uri_error(err)

        _resp = self.requested_error(request)
        if _resp:
            return self.error_redirect(redirect_uri, _resp, request)

        _error = self.verify_request(request)
        if _error:
            return self.error_redirect(redirect_uri, _error, request)

        return {"http_response": self.render_confirmation(request)}


class Finalize(Authorization):
    """
    Receives the confirmation form. The operator supplied JSON becomes the
    credential an authorization code is bound to.
    """

    endpoint_name = "finalize_endpoint"
    name = "finalize"

    def json_payload(self, request) -> dict:
        _payload = request.get(JSON_PAYLOAD)
        if is_blank(_payload):
            raise InvalidPayload("No JSON payload")

        try:
            _attributes = json.loads(_payload)
        except ValueError as err:
            raise InvalidPayload("Not JSON: {}".format(err))

        if not isinstance(_attributes, dict):
            raise InvalidPayload("JSON payload is not an object")
        return _attributes

    def process_request(
        self,
        request: Optional[Union[Message, dict]] = None,
        http_info: Optional[dict] = None,
        **kwargs
    ):
        _context = self.server_get("endpoint_context")
        try:
            redirect_uri = verify_uri(_context, request)
        except RedirectURIError as err:
            return self.redirect_uri_error(err)

        _resp = self.requested_error(request)
        if _resp:
            return self.error_redirect(redirect_uri, _resp, request)

        try:
            _attributes = self.json_payload(request)
        except InvalidPayload as err:
            logger.warning("Bad payload: {}".format(err))
            return self.error_redirect(redirect_uri, "invalid_json", request)

        try:
            _score = verify_gpg45(_context.cri_type, request)
        except GPG45Error as err:
            return self.error_redirect(
                redirect_uri,
                err.error,
                request,
                error_description=err.error_description,
            )

        _payload = dict(self.shared_claims(request))
        _payload.update(_attributes)

        credential = Credential(
            attributes=_payload, resource_id=request.get(RESOURCE_ID), gpg45_score=_score
        )
        code = _context.code_store.mint(
            credential, redirect_uri=redirect_uri, client_id=request.get("client_id", "")
        )
        _context.error_injection.persist(code.value, request)

        aresp = self.response_cls(code=code.value)
        if request.get("state"):
            aresp["state"] = request["state"]

        return {"response_args": aresp, "return_uri": redirect_uri}
