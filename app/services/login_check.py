"""
Vérification différée de la disponibilité d'un nom d'utilisateur pendant la saisie.

Chaque vérification attend LOGIN_CHECK_DELAY_MS avant d'interroger le magasin ;
une nouvelle vérification pour la même session remplace celle en attente, dont
le résultat est alors "superseded". Une panne du magasin donne "unknown" : la
saisie n'est jamais bloquée, l'unicité est revérifiée à l'enregistrement.
"""
import asyncio
import logging
from enum import Enum
from typing import Dict, Optional

from app.core.config import settings
from app.core.errors import StoreError
from app.db.store import DocumentStore
from app.models.firestore_models import USERS
from app.services.validation import LOGIN_RE


class LoginAvailability(str, Enum):
    AVAILABLE = "available"
    TAKEN = "taken"
    INVALID = "invalid"
    UNKNOWN = "unknown"
    SUPERSEDED = "superseded"


async def login_taken(store: DocumentStore, login: str, exclude_doc_id: Optional[str] = None) -> bool:
    docs = await store.query(USERS, where=[("login", "==", login)])
    return any(d["_id"] != exclude_doc_id for d in docs)


class DebouncedLoginCheck:
    def __init__(self, store: DocumentStore, delay_ms: Optional[int] = None):
        self.store = store
        self.delay = (settings.LOGIN_CHECK_DELAY_MS if delay_ms is None else delay_ms) / 1000
        self._generations: Dict[str, int] = {}

    def _next(self, session_key: str) -> int:
        generation = self._generations.get(session_key, 0) + 1
        self._generations[session_key] = generation
        return generation

    def _current(self, session_key: str, generation: int) -> bool:
        return self._generations.get(session_key) == generation

    async def check(self, session_key: str, login: str, exclude_doc_id: Optional[str] = None) -> LoginAvailability:
        generation = self._next(session_key)
        login = (login or "").strip()
        if not LOGIN_RE.match(login):
            return LoginAvailability.INVALID

        await asyncio.sleep(self.delay)
        if not self._current(session_key, generation):
            return LoginAvailability.SUPERSEDED

        try:
            taken = await login_taken(self.store, login, exclude_doc_id)
        except StoreError:
            logging.warning("Login availability check failed for %r", login, exc_info=True)
            return LoginAvailability.UNKNOWN

        if not self._current(session_key, generation):
            return LoginAvailability.SUPERSEDED
        return LoginAvailability.TAKEN if taken else LoginAvailability.AVAILABLE
