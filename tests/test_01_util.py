import pytest

from ipvstub.util import build_endpoints
from ipvstub.util import get_http_params
from ipvstub.util import importer
from ipvstub.util import in_shared_domain
from ipvstub.util import is_blank
from ipvstub.util import modsplit


@pytest.mark.parametrize(
    "uri,expected",
    [
        ("https://london.cloudapps.digital/cb", True),
        ("https://core.london.cloudapps.digital/callback", True),
        ("https://a.b.london.cloudapps.digital/callback?x=1", True),
        ("https%3A%2F%2Fcore.london.cloudapps.digital%2Fcallback", True),
        ("https://london.cloudapps.digital.evil.com/cb", False),
        ("https://evillondon.cloudapps.digital/cb", False),
        ("https://example.com/cb", False),
        ("not a uri", False),
        ("", False),
        (None, False),
    ],
)
def test_in_shared_domain(uri, expected):
    assert in_shared_domain(uri, "london.cloudapps.digital") is expected


def test_in_shared_domain_without_domain():
    assert in_shared_domain("https://core.london.cloudapps.digital/cb", "") is False


def test_is_blank():
    assert is_blank(None)
    assert is_blank("")
    assert is_blank("  ")
    assert not is_blank("x")


def test_get_http_params():
    assert get_http_params({"verify": False, "timeout": 10}) == {"verify": False, "timeout": 10}
    assert get_http_params({"client_cert": "c.pem", "client_key": "k.pem"}) == {
        "cert": ("c.pem", "k.pem")
    }
    with pytest.raises(ValueError):
        get_http_params({"client_key": "k.pem"})


def test_importer():
    assert modsplit("ipvstub.oauth2.token.Token") == ("ipvstub.oauth2.token", "Token")
    assert modsplit("ipvstub.oauth2.token:Token") == ("ipvstub.oauth2.token", "Token")
    from ipvstub.oauth2.token import Token

    assert importer("ipvstub.oauth2.token.Token") is Token


def test_build_endpoints():
    endpoints = build_endpoints(
        {"token": {"path": "token", "class": "ipvstub.oauth2.token.Token", "kwargs": {}}},
        server_get=None,
        issuer="https://cri.example.com/",
    )
    assert endpoints["token"].full_path == "https://cri.example.com/token"
    assert endpoints["token"].endpoint_path == "token"
