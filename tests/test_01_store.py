import threading

from ipvstub.error_injection import ErrorInjectionRecord
from ipvstub.error_injection import ErrorInjectionRegistry
from ipvstub.store import AccessTokenStore
from ipvstub.store import AuthorizationCodeStore
from ipvstub.store import Credential
from ipvstub.store import Database


def test_database():
    db = Database()
    assert db.add("a", 1)
    assert db.add("a", 2) is False
    assert db.get("a") == 1
    assert "a" in db
    assert len(db) == 1
    assert db.pop("a") == 1
    assert db.pop("a") is None
    assert db.get(None, "default") == "default"


def test_credential():
    cred = Credential({"name": "Daniel"}, gpg45_score={"fraud": 2})
    assert cred.resource_id
    assert cred.to_dict() == {"name": "Daniel", "gpg45Score": {"fraud": 2}}

    cred = Credential({"name": "Daniel"}, resource_id="res-1")
    assert cred.resource_id == "res-1"
    assert cred.to_dict() == {"name": "Daniel"}


def test_code_single_use():
    store = AuthorizationCodeStore()
    cred = Credential({"name": "Daniel"})
    code = store.mint(cred, redirect_uri="https://example.com/cb", client_id="client")
    assert code.value in store
    assert code.resource_id == cred.resource_id

    _redeemed = store.redeem(code.value)
    assert _redeemed.credential is cred
    assert _redeemed.redirect_uri == "https://example.com/cb"
    assert store.redeem(code.value) is None


def test_codes_unique():
    store = AuthorizationCodeStore()
    codes = {store.mint(Credential()).value for _ in range(100)}
    assert len(codes) == 100


def test_concurrent_redeem():
    store = AuthorizationCodeStore()
    code = store.mint(Credential())
    results = []
    barrier = threading.Barrier(10)

    def redeem():
        barrier.wait()
        results.append(store.redeem(code.value))

    threads = [threading.Thread(target=redeem) for _ in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len([r for r in results if r is not None]) == 1


def test_access_token_store():
    store = AccessTokenStore()
    cred = Credential({"a": "b"})
    token = store.mint(cred)
    assert store.get(token) is cred
    assert store.get("other") is None


class TestErrorInjection(object):
    def test_record_from_request(self):
        _rec = ErrorInjectionRecord.from_request(
            {
                "requested_oauth_error": "access_denied",
                "requested_oauth_error_description": "No way",
                "requested_oauth_error_endpoint": "AUTH",
            }
        )
        assert _rec.error == "access_denied"
        assert _rec.endpoint == "auth"
        assert _rec.targets("auth")
        assert not _rec.targets("token")
        assert _rec.to_dict() == {"error": "access_denied", "error_description": "No way"}

    def test_incomplete_request(self):
        assert ErrorInjectionRecord.from_request({"requested_oauth_error": "x"}) is None
        assert ErrorInjectionRecord.from_request({}) is None

    def test_none_never_triggers(self):
        registry = ErrorInjectionRegistry()
        for error, endpoint in [("none", "auth"), ("access_denied", "none"), ("none", "token")]:
            _req = {
                "requested_oauth_error": error,
                "requested_oauth_error_endpoint": endpoint,
            }
            assert registry.requested_auth_error(_req) is None
            assert registry.persist("code", _req) is False
            assert registry.requested_token_error("code") is None

    def test_auth_record_not_stored(self):
        registry = ErrorInjectionRegistry()
        _req = {
            "requested_oauth_error": "access_denied",
            "requested_oauth_error_endpoint": "auth",
        }
        assert registry.requested_auth_error(_req).error == "access_denied"
        assert registry.persist("code", _req) is False
        assert registry.requested_token_error("code") is None

    def test_token_record_used_once(self):
        registry = ErrorInjectionRegistry()
        _req = {
            "requested_oauth_error": "invalid_grant",
            "requested_oauth_error_description": "Forced",
            "requested_oauth_error_endpoint": "token",
        }
        assert registry.requested_auth_error(_req) is None
        assert registry.persist("code", _req)

        _rec = registry.requested_token_error("code")
        assert _rec.to_dict() == {"error": "invalid_grant", "error_description": "Forced"}
        assert registry.requested_token_error("code") is None
        assert registry.requested_token_error(None) is None
