"""
Identity lookup for mutating endpoints.

Routes never see credentials directly: they ask an IdentityProvider to map
an opaque bearer token to an Identity. The bundled StaticIdentityProvider
serves a fixed set of demo users whose token is their user id.
"""

import hmac
import logging
from dataclasses import dataclass
from functools import wraps
from typing import Dict, Optional

from flask import current_app, g, request

from reliefhub.errors import Unauthorized

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """Authenticated caller."""
    id: str
    username: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == 'admin'

    def to_dict(self) -> dict:
        return {'id': self.id, 'username': self.username, 'role': self.role}


class IdentityProvider:
    """Maps tokens (and login credentials) to identities."""

    def lookup(self, token: str) -> Optional[Identity]:
        raise NotImplementedError

    def authenticate(self, username: str, password: str) -> Optional[Identity]:
        raise NotImplementedError

    def issue_token(self, identity: Identity) -> str:
        raise NotImplementedError


# Demo accounts: {username: (role, password)}
DEMO_USERS: Dict[str, tuple] = {
    'netrunnerX': ('contributor', 'password123'),
    'reliefAdmin': ('admin', 'admin123'),
    'responder1': ('contributor', 'responder123'),
}


class StaticIdentityProvider(IdentityProvider):
    """In-memory user table; the token is the user id."""

    def __init__(self, users: Optional[Dict[str, tuple]] = None):
        users = DEMO_USERS if users is None else users
        self._identities = {
            username: Identity(id=username, username=username, role=role)
            for username, (role, _) in users.items()
        }
        self._passwords = {
            username: password for username, (_, password) in users.items()
        }

    def lookup(self, token: str) -> Optional[Identity]:
        return self._identities.get(token)

    def authenticate(self, username: str, password: str) -> Optional[Identity]:
        expected = self._passwords.get(username)
        if expected is None or not hmac.compare_digest(
            expected.encode('utf-8'), password.encode('utf-8')
        ):
            return None
        return self._identities[username]

    def issue_token(self, identity: Identity) -> str:
        return identity.id


def _bearer_token() -> Optional[str]:
    header = request.headers.get('Authorization', '')
    if not header.startswith('Bearer '):
        return None
    return header[len('Bearer '):].strip() or None


def require_auth(view):
    """
    Require a valid bearer token.

    The resolved Identity is available as flask.g.identity inside the view.
    """

    @wraps(view)
    def wrapper(*args, **kwargs):
        token = _bearer_token()
        if token is None:
            raise Unauthorized('Authentication required')

        provider: IdentityProvider = current_app.config['IDENTITY_PROVIDER']
        identity = provider.lookup(token)
        if identity is None:
            raise Unauthorized('Invalid authentication token')

        g.identity = identity
        return view(*args, **kwargs)

    return wrapper
