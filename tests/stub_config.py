import time

from cryptojwt import JWT
from cryptojwt.jwe.jwe import JWE
from cryptojwt.key_jar import build_keyjar

from ipvstub.template_handler import TemplateHandler

CLIENT_ID = "ipv-core-stub"
REDIRECT_URI = "https://client.example.com/callback"
SHARED_DOMAIN_REDIRECT_URI = "https://di-ipv-core-stub.london.cloudapps.digital/callback"
ISSUER = "https://cri.example.com"

KEYDEFS = [{"type": "EC", "crv": "P-256", "use": ["sig"]}]
ENC_KEYDEFS = [{"type": "RSA", "key": "", "use": ["enc"]}]

# The client signs its request objects with these
CLIENT_KEYJAR = build_keyjar(KEYDEFS)
# and encrypts them to the stub's public key
STUB_ENC_KEYJAR = build_keyjar(ENC_KEYDEFS)

SHARED_CLAIMS = {
    "addresses": ["123 random street, M13 7GE"],
    "names": [{"nameParts": [{"value": "Daniel"}, {"value": "Dan"}, {"value": "Danny"}]}],
    "birthDate": [{"value": "01/01/1980"}],
}


class CapturingTemplateHandler(TemplateHandler):
    def __init__(self, output="rendered output"):
        self.output = output
        self.calls = []

    def render(self, template, **kwargs):
        self.calls.append((template, kwargs))
        return self.output


def client_registration(redirect_uris=None, signing=True, encryption=True):
    _info = {"redirect_uris": redirect_uris or [REDIRECT_URI]}
    if signing:
        _info["signing_jwks"] = CLIENT_KEYJAR.export_jwks()
    if encryption:
        _info["encryption_jwks"] = STUB_ENC_KEYJAR.export_jwks(private=True)
    return _info


def cred_issuer_conf(**kwargs):
    conf = {
        "issuer": ISSUER,
        "cri_type": "EVIDENCE",
        "clients": {CLIENT_ID: client_registration()},
        "template_handler": CapturingTemplateHandler(),
    }
    conf.update(kwargs)
    return conf


def request_claims(**kwargs):
    _now = int(time.time())
    claims = {
        "aud": ISSUER,
        "sub": "subject",
        "redirect_uri": REDIRECT_URI,
        "response_type": "code",
        "state": "test-state",
        "nbf": _now,
        "exp": _now + 3600,
        "shared_claims": SHARED_CLAIMS,
    }
    claims.update(kwargs)
    return claims


def signed_request_object(claims=None, keyjar=None):
    _jwt = JWT(key_jar=keyjar or CLIENT_KEYJAR, iss=CLIENT_ID, sign_alg="ES256")
    return _jwt.pack(payload=claims or request_claims())


def encrypted_request_object(signed):
    _keys = STUB_ENC_KEYJAR.get_encrypt_key("RSA")
    _jwe = JWE(signed, alg="RSA-OAEP-256", enc="A256GCM", cty="JWT")
    return _jwe.encrypt(keys=_keys)


def tampered(token):
    return token[:-4] + "Nope"
