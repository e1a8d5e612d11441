"""Configuration management for the stubs"""
import base64
import binascii
import copy
import logging
import os
from typing import Dict
from typing import Mapping
from typing import Optional
from urllib.parse import urljoin

import yaml

from ipvstub.exception import ConfigurationError
from ipvstub.template_handler import TEMPLATE_DIR

logger = logging.getLogger(__name__)

CRED_DEFAULT_CONFIG = {
    "issuer": "http://localhost:8084",
    "cri_type": "EVIDENCE",
    "shared_redirect_domain": "london.cloudapps.digital",
    "trust_decrypted_request_objects": True,
    "template_dir": TEMPLATE_DIR,
    "clients": {},
    "endpoint": {
        "authorization": {
            "path": "authorize",
            "class": "ipvstub.oauth2.authorization.Authorization",
            "kwargs": {},
        },
        "finalize": {
            "path": "generate-response",
            "class": "ipvstub.oauth2.authorization.Finalize",
            "kwargs": {},
        },
        "token": {
            "path": "token",
            "class": "ipvstub.oauth2.token.Token",
            "kwargs": {"expires_in": 3600},
        },
        "credential": {
            "path": "credential",
            "class": "ipvstub.oauth2.credential.CredentialRetrieval",
            "kwargs": {},
        },
    },
    "logging": None,
    "log_level": None,
    "webserver": {"domain": "0.0.0.0", "port": 8084, "debug": False},
}

ORCHESTRATOR_DEFAULT_CONFIG = {
    "client_id": "some-client-id",
    "authorize_endpoint": "https://di-ipv-core-front.london.cloudapps.digital/oauth2/authorize",
    "token_endpoint": "https://ea8lfzcdq0.execute-api.eu-west-2.amazonaws.com/dev/token",
    "credential_endpoint": "https://ea8lfzcdq0.execute-api.eu-west-2.amazonaws.com/dev/user-identity",
    "redirect_uri": "http://localhost:8083/callback",
    "scope": "openid",
    "verify_state": True,
    "max_pending_states": 1000,
    "httpc_params": {"verify": True, "timeout": 10},
    "template_dir": TEMPLATE_DIR,
    "logging": None,
    "log_level": None,
    "webserver": {"domain": "0.0.0.0", "port": 8083, "debug": False},
}


def deep_merge(base: dict, update: Optional[dict]) -> dict:
    """Values in update replace those in base, dictionaries are merged."""
    if not update:
        return base

    for key, val in update.items():
        if isinstance(val, dict) and isinstance(base.get(key), dict):
            deep_merge(base[key], val)
        else:
            base[key] = copy.deepcopy(val)
    return base


def as_bool(val) -> bool:
    if isinstance(val, bool):
        return val
    return str(val).strip().lower() in ["1", "true", "yes", "on"]


def decode_client_config(value: str) -> dict:
    """
    The client registry may be handed over in the environment as base64
    encoded YAML (or JSON, which is valid YAML).
    """
    try:
        _txt = base64.b64decode(value, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as err:
        raise ConfigurationError("CLIENT_CONFIG is not base64 encoded: {}".format(err))

    try:
        _clients = yaml.safe_load(_txt)
    except yaml.YAMLError as err:
        raise ConfigurationError("Can not parse CLIENT_CONFIG: {}".format(err))

    if not isinstance(_clients, dict):
        raise ConfigurationError("CLIENT_CONFIG must be a mapping of client_id to client info")
    return _clients


class Configuration(object):
    default_config = {}
    mandatory = []

    def __init__(self, conf: Optional[Dict] = None, environ: Optional[Mapping] = None):
        _conf = deep_merge(copy.deepcopy(self.default_config), conf)
        if environ is None:
            environ = os.environ

        self.conf = self.from_environment(_conf, environ)
        _level = environ.get("LOG_LEVEL")
        if _level:
            self.conf["log_level"] = _level.strip().upper()
        self.verify()

    def from_environment(self, conf: dict, environ: Mapping) -> dict:
        return conf

    def verify(self):
        for param in self.mandatory:
            _val = self.conf.get(param)
            if _val is None or _val == "":
                raise ConfigurationError("Missing configuration parameter: {}".format(param))

    def __getitem__(self, item):
        return self.conf[item]

    def __contains__(self, item):
        return item in self.conf

    def get(self, item, default=None):
        return self.conf.get(item, default)

    def items(self):
        return self.conf.items()

    def keys(self):
        return self.conf.keys()


class CredentialIssuerConfiguration(Configuration):
    default_config = CRED_DEFAULT_CONFIG
    mandatory = ["issuer", "cri_type", "endpoint"]

    def from_environment(self, conf: dict, environ: Mapping) -> dict:
        _type = environ.get("CREDENTIAL_ISSUER_TYPE")
        if _type:
            conf["cri_type"] = _type.strip().upper()

        _clients = environ.get("CLIENT_CONFIG")
        if _clients:
            conf["clients"] = decode_client_config(_clients)

        _port = environ.get("CREDENTIAL_ISSUER_PORT")
        if _port:
            conf["webserver"]["port"] = int(_port)

        _trust = environ.get("TRUST_DECRYPTED_REQUEST_OBJECTS")
        if _trust:
            conf["trust_decrypted_request_objects"] = as_bool(_trust)
        return conf


class OrchestratorConfiguration(Configuration):
    default_config = ORCHESTRATOR_DEFAULT_CONFIG
    mandatory = ["client_id", "authorize_endpoint", "token_endpoint", "redirect_uri"]

    def from_environment(self, conf: dict, environ: Mapping) -> dict:
        for env_var, param in [
            ("IPV_CLIENT_ID", "client_id"),
            ("ORCHESTRATOR_REDIRECT_URL", "redirect_uri"),
        ]:
            _val = environ.get(env_var)
            if _val:
                conf[param] = _val

        _val = environ.get("IPV_ENDPOINT")
        if _val:
            conf["authorize_endpoint"] = urljoin(_val, "/oauth2/authorize")

        _backchannel = environ.get("IPV_BACKCHANNEL_ENDPOINT")
        if _backchannel:
            conf["token_endpoint"] = urljoin(
                _backchannel, environ.get("IPV_BACKCHANNEL_TOKEN_PATH", "/dev/token")
            )
            conf["credential_endpoint"] = urljoin(
                _backchannel,
                environ.get("IPV_BACKCHANNEL_USER_IDENTITY_PATH", "/dev/user-identity"),
            )

        _port = environ.get("ORCHESTRATOR_PORT")
        if _port:
            conf["webserver"]["port"] = int(_port)

        _verify = environ.get("ORCHESTRATOR_VERIFY_STATE")
        if _verify:
            conf["verify_state"] = as_bool(_verify)
        return conf


def load_yaml_config(filename: str) -> dict:
    """Load a config from a YAML file."""
    with open(filename) as file:
        config_dict = yaml.safe_load(file.read())
    return config_dict or {}


def create_from_config_file(
    cls, filename: Optional[str] = "", environ: Optional[Mapping] = None
) -> Configuration:
    if filename:
        _conf = load_yaml_config(filename)
    else:
        _conf = {}

    logger.debug("Configuration loaded from '{}'".format(filename))
    return cls(_conf, environ=environ)
