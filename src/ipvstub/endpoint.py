import json
import logging
from typing import Callable
from typing import Optional
from typing import Union

from oidcmsg.message import Message
from oidcmsg.oauth2 import ResponseMessage

from ipvstub import URL_ENCODED
from ipvstub import sanitize
from ipvstub.util import OAUTH2_NOCACHE_HEADERS

LOGGER = logging.getLogger(__name__)

"""
method call structure for Endpoints:

parse_request
    - post_parse_request (*)

process_request
    - requested_error
        - pre_validation (*)

do_response

process_request returns one of::

    {'http_response': <a complete body>, 'response_code': .., 'content_type': ..}
    {'response_args': <Message or dict>, 'return_uri': .., 'response_code': ..}

The first is handed to the web framework as is, the second is fed to
do_response which returns a dictionary that can look like this::

    {
      'response': _response as a string_,
      'http_headers': [
        ('Content-type', 'application/json'),
        ('Pragma', 'no-cache'),
        ('Cache-Control', 'no-store')
      ],
      'response_code': 400
    }
"""

ERROR_DESCRIPTION = {
    "invalid_request": "Invalid request",
    "invalid_client": "Client authentication failed",
    "invalid_grant": "Invalid grant",
    "unsupported_grant_type": "Unsupported grant type",
    "unsupported_response_type": "Unsupported authorization response type",
    "invalid_token": "Invalid access token",
    "invalid_json": "Unable to generate valid JSON Payload",
}


def set_content_type(headers, content_type):
    if ("Content-type", content_type) in headers:
        return headers

    _headers = [h for h in headers if h[0] != "Content-type"]
    _headers.append(("Content-type", content_type))
    return _headers


class Endpoint(object):
    request_cls = Message
    response_cls = Message
    error_cls = ResponseMessage
    endpoint_name = ""
    endpoint_path = ""
    name = ""
    request_format = "urlencoded"
    request_placement = "query"
    response_format = "json"
    response_placement = "body"

    def __init__(self, server_get: Callable, **kwargs):
        self.server_get = server_get
        self.post_parse_request = []
        self.pre_validation = []
        self.kwargs = kwargs
        self.full_path = ""

        for param in [
            "request_cls",
            "response_cls",
            "request_format",
            "request_placement",
            "response_format",
            "response_placement",
        ]:
            _val = kwargs.get(param)
            if _val:
                setattr(self, param, _val)

    def parse_request(
        self, request: Union[Message, dict, str], http_info: Optional[dict] = None, **kwargs
    ):
        """

        :param request: The request the server got
        :param http_info: HTTP information in connection with the request.
            This is a dictionary with keys: headers, url, cookies.
        :param kwargs: extra keyword arguments
        :return:
        """
        LOGGER.debug("- {} -".format(self.endpoint_name))
        LOGGER.info("Request: %s" % sanitize(request))

        if http_info is None:
            http_info = {}

        if request:
            if isinstance(request, (dict, Message)):
                req = self.request_cls(**request)
            else:
                req = self.request_cls().deserialize(request, self.request_format)
        else:
            req = self.request_cls()

        LOGGER.info("Parsed and verified request: %s" % sanitize(req))
        return self.do_post_parse_request(req, http_info=http_info, **kwargs)

    def do_post_parse_request(self, request: Message, **kwargs) -> Message:
        _context = self.server_get("endpoint_context")
        for meth in self.post_parse_request:
            request = meth(request, endpoint_context=_context, **kwargs)
        return request

    def requested_error(self, request: Message, **kwargs) -> Optional[Message]:
        """
        Runs the decision steps that may short circuit normal processing
        with an error response a test has asked for.

        :return: An error message or None if normal processing should go on
        """
        _context = self.server_get("endpoint_context")
        for meth in self.pre_validation:
            _resp = meth(request, endpoint_context=_context, **kwargs)
            if _resp:
                return _resp
        return None

    def error_message(self, error: str, error_description: Optional[str] = None, **kwargs):
        if error_description is None:
            error_description = ERROR_DESCRIPTION.get(error, "")

        _args = {"error": error}
        if error_description:
            _args["error_description"] = error_description
        for attr, val in kwargs.items():
            if val:
                _args[attr] = val
        return self.error_cls(**_args)

    def process_request(
        self,
        request: Optional[Union[Message, dict]] = None,
        http_info: Optional[dict] = None,
        **kwargs
    ):
        """

        :param http_info: Information on the HTTP request
        :param request: The request, can be in a number of formats
        :return: Arguments for the do_response method
        """
        return {}

    def do_response(
        self,
        response_args: Optional[Union[Message, dict]] = None,
        request: Optional[Union[Message, dict]] = None,
        error: Optional[str] = "",
        **kwargs
    ) -> dict:
        """
        :param response_args: Information to use when constructing the response
        :param request: The original request
        :param error: Possible error encountered while processing the request
        """
        if response_args is None:
            response_args = {}

        LOGGER.debug("do_response kwargs: %s", kwargs)

        if error:
            _response = self.error_message(
                error,
                kwargs.get("error_description"),
                state=kwargs.get("state"),
            )
        elif isinstance(response_args, Message):
            _response = response_args
        elif self.response_format == "json":
            # the attribute set is handed back as is
            _response = response_args
        else:
            _response = self.response_cls(**response_args)

        _placement = kwargs.get("response_placement", self.response_placement)
        if _placement == "body":
            if self.response_format == "json":
                content_type = "application/json; charset=utf-8"
                if isinstance(_response, Message):
                    resp = _response.to_json()
                else:
                    resp = json.dumps(_response)
            else:
                content_type = URL_ENCODED
                resp = _response.to_urlencoded()
        elif _placement == "url":
            content_type = URL_ENCODED
            resp = _response.request(kwargs["return_uri"])
        else:
            raise ValueError("Don't know where that is: '{}".format(_placement))

        try:
            http_headers = set_content_type(kwargs["http_headers"], content_type)
        except KeyError:
            http_headers = [("Content-type", content_type)]

        http_headers.extend(OAUTH2_NOCACHE_HEADERS)

        _resp = {"response": resp, "http_headers": http_headers, "response_placement": _placement}

        try:
            _resp["response_code"] = kwargs["response_code"]
        except KeyError:
            pass

        return _resp
