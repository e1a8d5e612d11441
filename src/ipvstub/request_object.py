import json
import logging
from typing import Optional

from cryptojwt import KeyJar
from cryptojwt import as_unicode
from cryptojwt.jwe.jwe import factory as jwe_factory
from cryptojwt.jws.jws import factory as jws_factory
from cryptojwt.jws.utils import alg2keytype
from cryptojwt.simple_jwt import SimpleJWT

from ipvstub.exception import RequestObjectError

logger = logging.getLogger(__name__)

INVALID_REQUEST_OBJECT = "Error: Signature of the shared attribute JWT is not valid"


class RequestObjectCodec(object):
    """
    Turns the 'request' parameter of an authorization request into a claim
    set.

    A request object may be a signed JWT or a signed JWT nested inside a JWE
    encrypted to a key the stub holds for the client.
    """

    def __init__(self, keyjar: KeyJar, trust_decrypted_request_objects: Optional[bool] = True):
        self.keyjar = keyjar
        # A request object that could be decrypted with the key registered
        # for the client is accepted without looking at the inner signature.
        self.trust_decrypted_request_objects = trust_decrypted_request_objects

    def _decrypt(self, token: str, client_id: str) -> Optional[str]:
        try:
            _jwe = jwe_factory(token)
        except Exception as err:
            logger.debug("Not a JWE: {}".format(err))
            return None

        if _jwe is None:
            return None

        _keys = self.keyjar.get("enc", "", client_id)
        try:
            return as_unicode(_jwe.decrypt(token, keys=_keys))
        except Exception as err:
            logger.warning("Could not decrypt request object from {}: {}".format(client_id, err))
            return None

    @staticmethod
    def _unpack(token: str) -> dict:
        try:
            _jwt = SimpleJWT().unpack(token)
            _claims = _jwt.payload()
        except Exception as err:
            raise RequestObjectError("Could not parse request object: {}".format(err))

        if not isinstance(_claims, dict):
            raise RequestObjectError("Request object payload is not a JSON object")
        return _claims

    def _verify(self, token: str, client_id: str) -> dict:
        if not self.keyjar.get("sig", "", client_id):
            logger.debug("No signing keys registered for {}".format(client_id))
            return self._unpack(token)

        try:
            _jws = jws_factory(token)
            _alg = _jws.jwt.headers["alg"]
        except Exception as err:
            logger.warning("Request object from {} is not a signed JWT: {}".format(client_id, err))
            raise RequestObjectError(INVALID_REQUEST_OBJECT)

        _keys = self.keyjar.get("sig", alg2keytype(_alg), client_id)
        try:
            _claims = _jws.verify_compact(keys=_keys, sigalg=_alg)
        except Exception as err:
            logger.warning("Request object signature from {} not valid: {}".format(client_id, err))
            raise RequestObjectError(INVALID_REQUEST_OBJECT)

        if isinstance(_claims, str):
            try:
                _claims = json.loads(_claims)
            except ValueError:
                raise RequestObjectError("Request object payload is not a JSON object")

        if not isinstance(_claims, dict):
            raise RequestObjectError("Request object payload is not a JSON object")
        return _claims

    def decode(self, request: str, client_id: Optional[str] = "") -> dict:
        """
        :param request: The request object as found in the request
        :param client_id: The client that sent it
        :return: The claims of the request object
        :raises RequestObjectError: If neither a signed nor an encrypted
            request object can be made out of the string
        """
        if not request:
            raise RequestObjectError("Empty request object")

        _signed = self._decrypt(request, client_id or "")
        if _signed is not None:
            logger.debug("Request object from {} decrypted".format(client_id))
            if self.trust_decrypted_request_objects:
                return self._unpack(_signed)
            return self._verify(_signed, client_id or "")

        return self._verify(request, client_id or "")
