"""
The relying party side of the exchange. Sends the user to the identity
verification platform, takes the authorization response on the callback,
exchanges the code and fetches the credential.
"""
import logging
from typing import Optional
from typing import Union

import requests
from oidcmsg.exception import MessageException
from oidcmsg.message import Message
from oidcmsg.oauth2 import AccessTokenRequest
from oidcmsg.oauth2 import AccessTokenResponse
from oidcmsg.oauth2 import AuthorizationErrorResponse
from oidcmsg.oauth2 import AuthorizationRequest
from oidcmsg.oauth2 import AuthorizationResponse
from oidcmsg.oauth2 import ResponseMessage

from ipvstub import URL_ENCODED
from ipvstub import rndstr
from ipvstub import sanitize
from ipvstub.configure import OrchestratorConfiguration
from ipvstub.exception import AuthorizationFailed
from ipvstub.exception import CredentialRequestFailed
from ipvstub.exception import ServiceError
from ipvstub.exception import StateMismatch
from ipvstub.exception import TokenRequestFailed
from ipvstub.store import Database
from ipvstub.util import get_http_params
from ipvstub.util import is_blank

logger = logging.getLogger(__name__)


class StateStore(Database):
    """
    Outstanding state values. When more than max_states are waiting for a
    callback the oldest are forgotten.
    """

    def __init__(self, max_states: Optional[int] = 1000):
        Database.__init__(self)
        self.max_states = max_states

    def _evict(self):
        with self._lock:
            while len(self._db) > self.max_states:
                _oldest = next(iter(self._db))
                logger.debug("Dropping unused state {}".format(_oldest))
                del self._db[_oldest]

    def create(self) -> str:
        while True:
            _state = rndstr(24)
            if self.add(_state, True):
                break

        if self.max_states:
            self._evict()
        return _state

    def consume(self, state: Optional[str]) -> bool:
        """A state value can only be used once."""
        return self.pop(state) is not None


class OrchestratorClient(object):
    def __init__(
        self,
        conf: Union[dict, OrchestratorConfiguration],
        httpc: Optional[object] = None,
    ):
        self.conf = conf
        self.client_id = conf["client_id"]
        self.authorize_endpoint = conf["authorize_endpoint"]
        self.token_endpoint = conf["token_endpoint"]
        self.credential_endpoint = conf.get("credential_endpoint")
        self.redirect_uri = conf["redirect_uri"]
        self.scope = conf.get("scope", "openid")
        self.verify_state = conf.get("verify_state", True)

        self.httpc = httpc or requests
        self.httpc_params = get_http_params(conf.get("httpc_params") or {})
        self.state_db = StateStore(conf.get("max_pending_states", 1000))

    def authorization_redirect(self) -> str:
        """
        :return: The URL to redirect the user to
        """
        _state = self.state_db.create()
        _req = AuthorizationRequest(
            response_type="code",
            client_id=self.client_id,
            scope=self.scope,
            redirect_uri=self.redirect_uri,
            state=_state,
        )
        _url = _req.request(self.authorize_endpoint)
        logger.info("Redirecting to {}".format(_url))
        return _url

    def handle_callback(self, query_string: str) -> AuthorizationResponse:
        """
        :param query_string: The query part of the callback URL
        :return: The authorization response
        :raises AuthorizationFailed: If an error was returned or the state is
            not one this client handed out
        """
        _resp = Message().from_urlencoded(query_string)
        if "error" in _resp:
            _err = AuthorizationErrorResponse(**_resp.to_dict())
            logger.error(
                "Authorization failed: {} {}".format(
                    _err["error"], _err.get("error_description", "")
                )
            )
            raise AuthorizationFailed(_err["error"], _err.get("error_description", ""))

        _aresp = AuthorizationResponse(**_resp.to_dict())
        if is_blank(_aresp.get("code")):
            raise AuthorizationFailed("invalid_request", "No code in authorization response")

        if self.verify_state and not self.state_db.consume(_aresp.get("state")):
            logger.error("Unknown state in authorization response: {}".format(_aresp.get("state")))
            raise StateMismatch("Unknown state value")

        return _aresp

    def _send(self, method: str, url: str, **kwargs):
        _kwargs = dict(self.httpc_params)
        _kwargs.update(kwargs)
        try:
            return self.httpc.request(method, url, **_kwargs)
        except requests.RequestException as err:
            logger.error("{} {} failed: {}".format(method, url, err))
            raise ServiceError("Could not reach {}: {}".format(url, err))

    def exchange_code_for_token(self, code: str) -> Optional[AccessTokenResponse]:
        """
        :param code: The authorization code
        :return: The token response or None if the token endpoint returned
            an error
        """
        _req = AccessTokenRequest(
            grant_type="authorization_code",
            code=code,
            redirect_uri=self.redirect_uri,
            client_id=self.client_id,
        )
        logger.debug("Token request: {}".format(sanitize(_req.to_dict())))
        _resp = self._send(
            "POST",
            self.token_endpoint,
            data=_req.to_urlencoded(),
            headers={"Content-Type": URL_ENCODED},
        )

        try:
            _info = _resp.json()
        except ValueError:
            logger.error("Token endpoint returned non JSON ({}): {}".format(
                _resp.status_code, _resp.text))
            return None

        if not isinstance(_info, dict):
            logger.error("Token endpoint returned a JSON {}".format(type(_info).__name__))
            return None

        if _resp.status_code >= 400 or "error" in _info:
            _err = ResponseMessage(**_info)
            logger.error(
                "Token request failed: {} {}".format(
                    _err.get("error"), _err.get("error_description", "")
                )
            )
            return None

        _token_resp = AccessTokenResponse(**_info)
        try:
            _token_resp.verify()
        except (MessageException, ValueError) as err:
            logger.error("Not a usable token response: {}".format(err))
            return None

        return _token_resp

    def get_credential(self, access_token: str) -> dict:
        """
        :param access_token: The bearer token
        :return: The attributes bound to the token
        :raises CredentialRequestFailed: On any error response
        """
        _resp = self._send(
            "GET",
            self.credential_endpoint,
            headers={"Authorization": "Bearer {}".format(access_token)},
        )

        if _resp.status_code >= 400:
            logger.error(
                "Credential request failed ({}): {}".format(_resp.status_code, _resp.text)
            )
            raise CredentialRequestFailed(
                "Credential endpoint returned {}".format(_resp.status_code)
            )

        try:
            return _resp.json()
        except ValueError:
            raise CredentialRequestFailed("Credential endpoint returned non JSON")

    def callback(self, query_string: str) -> dict:
        """The whole of the code flow after the user has come back."""
        _aresp = self.handle_callback(query_string)

        _token_resp = self.exchange_code_for_token(_aresp["code"])
        if _token_resp is None:
            raise TokenRequestFailed("Could not exchange the authorization code")

        return self.get_credential(_token_resp["access_token"])
