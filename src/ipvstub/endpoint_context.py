import copy
import json
import logging
from typing import Callable
from typing import Optional
from typing import Union

from cryptojwt import KeyJar

from ipvstub.configure import CredentialIssuerConfiguration
from ipvstub.error_injection import ErrorInjectionRegistry
from ipvstub.exception import ConfigurationError
from ipvstub.gpg45 import CRI_TYPES
from ipvstub.request_object import RequestObjectCodec
from ipvstub.store import AccessTokenStore
from ipvstub.store import AuthorizationCodeStore
from ipvstub.template_handler import init_template_handler

logger = logging.getLogger(__name__)

# key set name in the client registration -> what the keys are used for
CLIENT_KEY_USE = {"signing_jwks": "sig", "encryption_jwks": "enc"}


def _read_jwks(spec: Union[dict, str]) -> dict:
    if isinstance(spec, dict):
        return spec

    with open(spec) as fp:
        return json.load(fp)


def init_client_keys(keyjar: KeyJar, client_id: str, client_info: dict):
    """
    Imports the key sets registered for a client into the key jar. Each key
    gets a 'use' matching the set it came from, so signing keys are never
    tried when decrypting and vice versa.
    """
    for name, use in CLIENT_KEY_USE.items():
        _spec = client_info.get(name)
        if not _spec:
            continue

        _jwks = copy.deepcopy(_read_jwks(_spec))
        for _key in _jwks.get("keys", []):
            _key.setdefault("use", use)

        keyjar.import_jwks(_jwks, client_id)
        logger.debug("Imported {} keys for {}".format(use, client_id))


class EndpointContext(object):
    def __init__(
        self,
        conf: Union[dict, CredentialIssuerConfiguration],
        server_get: Callable,
        keyjar: Optional[KeyJar] = None,
    ):
        self.conf = conf
        self.server_get = server_get

        self.issuer = conf.get("issuer", "")
        self.cri_type = conf.get("cri_type", "EVIDENCE")
        if self.cri_type not in CRI_TYPES:
            raise ConfigurationError("Unknown credential issuer type: {}".format(self.cri_type))

        self.shared_redirect_domain = conf.get("shared_redirect_domain", "")

        self.cdb = {}
        self.keyjar = keyjar or KeyJar()
        for client_id, client_info in (conf.get("clients") or {}).items():
            self.add_client(client_id, client_info)

        self.request_object_codec = RequestObjectCodec(
            self.keyjar,
            trust_decrypted_request_objects=conf.get("trust_decrypted_request_objects", True),
        )

        self.code_store = AuthorizationCodeStore()
        self.token_store = AccessTokenStore()
        self.error_injection = ErrorInjectionRegistry()

        _handler = conf.get("template_handler")
        if _handler:
            self.template_handler = _handler
        else:
            self.template_handler = init_template_handler(
                conf.get("template_dir"),
                stub_name="Credential issuer stub ({})".format(self.cri_type),
            )

    def add_client(self, client_id: str, client_info: dict):
        if not client_id:
            raise ConfigurationError("Client registration without client_id")

        self.cdb[client_id] = {
            "client_id": client_id,
            "redirect_uris": list(client_info.get("redirect_uris") or []),
        }
        init_client_keys(self.keyjar, client_id, client_info)

    def get_endpoint(self, name):
        return self.server_get("endpoint", name)
