from typing import Optional
from typing import Union

from cryptojwt import KeyJar

from ipvstub.configure import CredentialIssuerConfiguration
from ipvstub.endpoint_context import EndpointContext
from ipvstub.util import build_endpoints


def do_endpoints(conf, server_get):
    return build_endpoints(conf["endpoint"], server_get=server_get, issuer=conf["issuer"])


class Server(object):
    """The credential issuer: an endpoint context and the endpoints using it."""

    def __init__(
        self,
        conf: Union[dict, CredentialIssuerConfiguration],
        keyjar: Optional[KeyJar] = None,
    ):
        self.conf = conf
        self.endpoint_context = EndpointContext(
            conf=conf, server_get=self.server_get, keyjar=keyjar
        )
        self.endpoint = do_endpoints(conf, self.server_get)

    def server_get(self, what, *arg):
        _func = getattr(self, "get_{}".format(what), None)
        if _func:
            return _func(*arg)
        return None

    def get_endpoints(self, *arg):
        return self.endpoint

    def get_endpoint(self, endpoint_name, *arg):
        try:
            return self.endpoint[endpoint_name]
        except KeyError:
            return None

    def get_endpoint_context(self, *arg):
        return self.endpoint_context
