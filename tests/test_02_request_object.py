import pytest
from cryptojwt import JWT
from cryptojwt import KeyJar
from cryptojwt.jws.jws import factory
from cryptojwt.key_jar import build_keyjar

from ipvstub.endpoint_context import init_client_keys
from ipvstub.exception import RequestObjectError
from ipvstub.request_object import INVALID_REQUEST_OBJECT
from ipvstub.request_object import RequestObjectCodec

from stub_config import CLIENT_ID
from stub_config import KEYDEFS
from stub_config import SHARED_CLAIMS
from stub_config import client_registration
from stub_config import encrypted_request_object
from stub_config import request_claims
from stub_config import signed_request_object
from stub_config import tampered


class TestRequestObjectCodec(object):
    @pytest.fixture(autouse=True)
    def create_codec(self):
        self.keyjar = KeyJar()
        init_client_keys(self.keyjar, CLIENT_ID, client_registration())
        self.codec = RequestObjectCodec(self.keyjar)

    def test_signed(self):
        _claims = self.codec.decode(signed_request_object(), CLIENT_ID)
        assert _claims["shared_claims"] == SHARED_CLAIMS
        assert _claims["state"] == "test-state"
        assert _claims["iss"] == CLIENT_ID

    def test_signed_es256(self):
        _jws = signed_request_object()
        assert factory(_jws).jwt.headers["alg"] == "ES256"
        assert self.codec.decode(_jws, CLIENT_ID)["shared_claims"] == SHARED_CLAIMS

    def test_signed_rs256(self):
        _rsa = build_keyjar([{"type": "RSA", "key": "", "use": ["sig"]}])
        keyjar = KeyJar()
        init_client_keys(keyjar, "rsa-client", {"signing_jwks": _rsa.export_jwks()})
        _jws = JWT(key_jar=_rsa, iss="rsa-client", sign_alg="RS256").pack(
            payload=request_claims()
        )
        _claims = RequestObjectCodec(keyjar).decode(_jws, "rsa-client")
        assert _claims["state"] == "test-state"

    def test_decode_twice(self):
        _jws = signed_request_object()
        assert self.codec.decode(_jws, CLIENT_ID) == self.codec.decode(_jws, CLIENT_ID)

    def test_bad_signature(self):
        with pytest.raises(RequestObjectError) as err:
            self.codec.decode(tampered(signed_request_object()), CLIENT_ID)
        assert INVALID_REQUEST_OBJECT in str(err.value)

    def test_signed_by_someone_else(self):
        _jws = signed_request_object(keyjar=build_keyjar(KEYDEFS))
        with pytest.raises(RequestObjectError):
            self.codec.decode(_jws, CLIENT_ID)

    def test_unknown_client_has_no_keys(self):
        # nothing to verify against, only the structure is checked
        _claims = self.codec.decode(signed_request_object(), "unknown")
        assert _claims["state"] == "test-state"

    def test_garbage(self):
        with pytest.raises(RequestObjectError):
            self.codec.decode("not.a.jwt", "unknown")

        with pytest.raises(RequestObjectError):
            self.codec.decode("", CLIENT_ID)

    def test_encrypted(self):
        _jwe = encrypted_request_object(signed_request_object())
        _claims = self.codec.decode(_jwe, CLIENT_ID)
        assert _claims["shared_claims"] == SHARED_CLAIMS

    def test_encrypted_inner_signature_trusted(self):
        _jwe = encrypted_request_object(tampered(signed_request_object()))
        _claims = self.codec.decode(_jwe, CLIENT_ID)
        assert _claims["redirect_uri"] == request_claims()["redirect_uri"]

    def test_encrypted_inner_signature_verified(self):
        codec = RequestObjectCodec(self.keyjar, trust_decrypted_request_objects=False)
        _jwe = encrypted_request_object(signed_request_object())
        assert codec.decode(_jwe, CLIENT_ID)["state"] == "test-state"

        _jwe = encrypted_request_object(tampered(signed_request_object()))
        with pytest.raises(RequestObjectError):
            codec.decode(_jwe, CLIENT_ID)

    def test_encrypted_no_decryption_key(self):
        keyjar = KeyJar()
        init_client_keys(keyjar, CLIENT_ID, client_registration(encryption=False))
        codec = RequestObjectCodec(keyjar)
        _jwe = encrypted_request_object(signed_request_object())
        with pytest.raises(RequestObjectError):
            codec.decode(_jwe, CLIENT_ID)
