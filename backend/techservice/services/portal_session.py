"""Portal session: which role is signed in and as whom (client-side; the HTTP API does not mount it).

Wraps a key/value storage (a dict, a shelve, a browser-storage bridge) with explicit
lifecycle hooks. ``load()`` runs once at init, ``login`` writes, ``logout`` clears. Each
role has its own key so an admin and a staff session can coexist on one device.
"""
from __future__ import annotations
import json
import logging
from typing import Any, Dict, MutableMapping, Optional
from techservice.services.accounts import USER_TYPES

logger = logging.getLogger(__name__)

KEY_PREFIX = 'techservice.session.'


def session_key(role: str) -> str:
    return KEY_PREFIX + role


class PortalSession:
    def __init__(self, storage: MutableMapping[str, str]):
        self.storage = storage
        self.identities: Dict[str, Dict[str, Any]] = {}
        self.load()

    def load(self):
        self.identities = {}
        for role in USER_TYPES:
            raw = self.storage.get(session_key(role))
            if not raw:
                continue
            try:
                identity = json.loads(raw)
            except ValueError:
                logger.warning('discarding unreadable %s session', role)
                self.storage.pop(session_key(role), None)
                continue
            if isinstance(identity, dict) and identity.get('id'):
                self.identities[role] = identity
        return self

    def login(self, role: str, identity: Dict[str, Any]):
        if role not in USER_TYPES:
            raise ValueError(f'unknown role {role}')
        self.storage[session_key(role)] = json.dumps(identity)
        self.identities[role] = dict(identity)

    def logout(self, role: str):
        self.storage.pop(session_key(role), None)
        self.identities.pop(role, None)

    def current(self, role: str) -> Optional[Dict[str, Any]]:
        return self.identities.get(role)

    @property
    def portal(self) -> Optional[str]:
        """Portal to enter on start: admin wins when both sessions exist."""
        for role in USER_TYPES:
            if role in self.identities:
                return role
        return None


__all__ = ['PortalSession', 'session_key']
