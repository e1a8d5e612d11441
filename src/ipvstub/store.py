"""In-memory stores shared between the credential issuer endpoints.

Nothing is persisted, a restart clears all state.
"""
import logging
import threading
import uuid
from typing import Any
from typing import Dict
from typing import Optional

from ipvstub import rndstr

logger = logging.getLogger(__name__)


class Credential(object):
    def __init__(
        self,
        attributes: Optional[dict] = None,
        resource_id: Optional[str] = "",
        gpg45_score: Optional[dict] = None,
    ):
        self.attributes = attributes or {}
        self.resource_id = resource_id or str(uuid.uuid4())
        self.gpg45_score = gpg45_score or {}

    def to_dict(self) -> dict:
        _res = dict(self.attributes)
        if self.gpg45_score:
            _res["gpg45Score"] = self.gpg45_score
        return _res


class AuthorizationCode(object):
    def __init__(
        self,
        value: str,
        credential: Credential,
        redirect_uri: Optional[str] = "",
        client_id: Optional[str] = "",
    ):
        self.value = value
        self.credential = credential
        self.redirect_uri = redirect_uri
        self.client_id = client_id

    @property
    def resource_id(self):
        return self.credential.resource_id


class Database(object):
    """A dictionary where each single operation holds a lock."""

    def __init__(self):
        self._db: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def set(self, key: str, value: Any):
        with self._lock:
            self._db[key] = value

    def add(self, key: str, value: Any) -> bool:
        """Store the value unless the key is already taken."""
        with self._lock:
            if key in self._db:
                return False
            self._db[key] = value
            return True

    def get(self, key: Optional[str], default=None):
        if key is None:
            return default
        with self._lock:
            return self._db.get(key, default)

    def pop(self, key: Optional[str], default=None):
        if key is None:
            return default
        with self._lock:
            return self._db.pop(key, default)

    def __contains__(self, key):
        with self._lock:
            return key in self._db

    def __len__(self):
        with self._lock:
            return len(self._db)


class AuthorizationCodeStore(Database):
    def mint(
        self,
        credential: Credential,
        redirect_uri: Optional[str] = "",
        client_id: Optional[str] = "",
    ) -> AuthorizationCode:
        while True:
            _code = AuthorizationCode(
                rndstr(32), credential, redirect_uri=redirect_uri, client_id=client_id
            )
            if self.add(_code.value, _code):
                break

        logger.debug("Minted authorization code for resource {}".format(credential.resource_id))
        return _code

    def redeem(self, code: str) -> Optional[AuthorizationCode]:
        """
        Remove the code and return what it was bound to. Only one caller
        can get a code back, everybody else gets None.
        """
        return self.pop(code)


class AccessTokenStore(Database):
    def mint(self, credential: Credential) -> str:
        while True:
            _token = rndstr(32)
            if self.add(_token, credential):
                return _token
