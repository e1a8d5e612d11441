import json
from urllib.parse import parse_qs
from urllib.parse import urlparse

import pytest

from ipvstub.configure import CredentialIssuerConfiguration
from ipvstub.oauth2.credential import bearer_token
from ipvstub.server import Server
from ipvstub.store import Credential

from stub_config import CLIENT_ID
from stub_config import REDIRECT_URI
from stub_config import SHARED_CLAIMS
from stub_config import cred_issuer_conf
from stub_config import signed_request_object


def test_bearer_token():
    assert bearer_token({}, {"headers": {"authorization": "Bearer abc"}}) == "abc"
    assert bearer_token({}, {"headers": {"Authorization": "bearer abc "}}) == "abc"
    assert bearer_token({}, {"headers": {"authorization": "Basic abc"}}) == ""
    assert bearer_token({}, {"headers": {"authorization": "Bearer"}}) == ""
    assert bearer_token({"access_token": "abc"}, {"headers": {}}) == "abc"
    assert bearer_token({"access_token": "abc"}) == "abc"
    assert bearer_token(None) == ""


class TestEndpoint(object):
    @pytest.fixture(autouse=True)
    def create_endpoint(self):
        self.server = Server(
            CredentialIssuerConfiguration(cred_issuer_conf(cri_type="FRAUD"), environ={})
        )
        self.endpoint_context = self.server.endpoint_context
        self.endpoint = self.server.server_get("endpoint", "credential")

    def _credential_request(self, token="", request=None):
        http_info = {"headers": {}}
        if token:
            http_info["headers"]["authorization"] = "Bearer {}".format(token)
        _req = self.endpoint.parse_request(request or {}, http_info=http_info)
        _args = self.endpoint.process_request(_req, http_info=http_info)
        return self.endpoint.do_response(request=_req, **_args)

    def test_credential(self):
        _cred = Credential({"name": "Daniel", "empty": ""}, gpg45_score={"fraud": 2})
        _token = self.endpoint_context.token_store.mint(_cred)

        _resp = self._credential_request(_token)
        assert "response_code" not in _resp
        assert json.loads(_resp["response"]) == {
            "name": "Daniel",
            "empty": "",
            "gpg45Score": {"fraud": 2},
        }

    def test_token_as_parameter(self):
        _token = self.endpoint_context.token_store.mint(Credential({"name": "Daniel"}))
        _resp = self._credential_request(request={"access_token": _token})
        assert json.loads(_resp["response"]) == {"name": "Daniel"}

    def test_unknown_token(self):
        _resp = self._credential_request("unknown")
        assert _resp["response_code"] == 401
        assert json.loads(_resp["response"])["error"] == "invalid_token"

    def test_missing_token(self):
        _resp = self._credential_request()
        assert _resp["response_code"] == 401
        assert ("WWW-Authenticate", 'Bearer error="invalid_token"') in _resp["http_headers"]

    def test_round_trip(self):
        _finalize = self.server.server_get("endpoint", "finalize")
        _payload = {"name": "Daniel", "addresses": ["1 Other street"]}
        _req = _finalize.parse_request(
            {
                "client_id": CLIENT_ID,
                "response_type": "code",
                "redirect_uri": REDIRECT_URI,
                "request": signed_request_object(),
                "json_payload": json.dumps(_payload),
                "fraudValue": "2",
            }
        )
        _url = _finalize.do_response(request=_req, **_finalize.process_request(_req))["response"]
        _code = parse_qs(urlparse(_url).query)["code"][0]

        _token = self.server.server_get("endpoint", "token")
        _treq = _token.parse_request(
            {
                "client_id": CLIENT_ID,
                "grant_type": "authorization_code",
                "code": _code,
                "redirect_uri": REDIRECT_URI,
            }
        )
        _tresp = _token.do_response(request=_treq, **_token.process_request(_treq))
        _access_token = json.loads(_tresp["response"])["access_token"]

        _expected = dict(SHARED_CLAIMS)
        _expected.update(_payload)
        _expected["gpg45Score"] = {"fraud": 2}
        assert json.loads(self._credential_request(_access_token)["response"]) == _expected
