import importlib
import logging
from typing import Optional
from urllib.parse import unquote
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

OAUTH2_NOCACHE_HEADERS = [("Pragma", "no-cache"), ("Cache-Control", "no-store")]


def is_blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def in_shared_domain(uri: Optional[str], domain: Optional[str]) -> bool:
    """
    Stubs deployed side by side share one parent domain. Any redirect URI on
    a host below it is accepted without being registered by the client.

    :param uri: The redirect URI
    :param domain: The shared parent domain, e.g. 'london.cloudapps.digital'
    :return: True if the host of the URI is the domain or a sub domain of it
    """
    if is_blank(uri) or is_blank(domain):
        return False

    _host = urlparse(unquote(uri)).hostname
    if not _host:
        return False

    _domain = domain.strip().lstrip(".").lower()
    return _host == _domain or _host.endswith(".{}".format(_domain))


def get_http_params(config):
    _verify_ssl = config.get("verify")
    if _verify_ssl is None:
        _verify_ssl = config.get("verify_ssl")

    if _verify_ssl in [True, False]:
        params = {"verify": _verify_ssl}
    else:
        params = {}

    _timeout = config.get("timeout")
    if _timeout:
        params["timeout"] = _timeout

    _cert = config.get("client_cert")
    _key = config.get("client_key")
    if _cert:
        if _key:
            params["cert"] = (_cert, _key)
        else:
            params["cert"] = _cert
    elif _key:
        raise ValueError("Key without cert is no good")

    return params


def modsplit(s):
    """Split importable"""
    if ":" in s:
        c = s.split(":")
        if len(c) != 2:
            raise ValueError(f"Syntax error: {s}")
        return c[0], c[1]
    else:
        c = s.split(".")
        if len(c) < 2:
            raise ValueError(f"Syntax error: {s}")
        return ".".join(c[:-1]), c[-1]


def importer(name):
    """Import by name"""
    c1, c2 = modsplit(name)
    module = importlib.import_module(c1)
    return getattr(module, c2)


def build_endpoints(conf, server_get, issuer):
    """
    conf typically contains::

        'token': {
            'path': 'token',
            'class': Token,
            'kwargs': {}
        },

    :param conf:
    :param server_get: Callback function
    :param issuer:
    :return:
    """

    if issuer.endswith("/"):
        _url = issuer[:-1]
    else:
        _url = issuer

    endpoint = {}
    for name, spec in conf.items():
        kwargs = spec.get("kwargs", {})

        if isinstance(spec["class"], str):
            _instance = importer(spec["class"])(server_get=server_get, **kwargs)
        else:
            _instance = spec["class"](server_get=server_get, **kwargs)

        _path = spec["path"]
        _instance.endpoint_path = _path
        _instance.full_path = "{}/{}".format(_url, _path)
        endpoint[_instance.name] = _instance

    return endpoint
