"""
Chargement du roster d'une année : professeurs dont le document appartient à
l'année (voir membership.py) unis aux professeurs cités dans les affectations de
l'année, dédoublonnés, triés nom puis prénom, mis en cache.
"""
import asyncio
import logging
import math
import unicodedata
from dataclasses import dataclass
from typing import Dict, List, Optional, Set

from app.core.config import settings
from app.db.store import DocumentStore
from app.models.firestore_models import ASSIGNMENTS, USERS, ProfessorRow, prof_id_from_assignment
from app.roster_engine.cache import RosterCache
from app.roster_engine.membership import belongs_to_year


def collation_key(value: str) -> str:
    """Clé de tri insensible à la casse et aux accents ("É" == "e")."""
    decomposed = unicodedata.normalize("NFD", value or "")
    return "".join(c for c in decomposed if not unicodedata.combining(c)).casefold()


def sort_rows(rows: List[ProfessorRow]) -> List[ProfessorRow]:
    return sorted(rows, key=lambda r: (collation_key(r.nom), collation_key(r.prenom)))


def search_rows(rows: List[ProfessorRow], text: str) -> List[ProfessorRow]:
    q = (text or "").strip().lower()
    if not q:
        return sort_rows(rows)
    return sort_rows([r for r in rows if q in f"{r.nom} {r.prenom} {r.specialite}".lower()])


def paginate(rows: List[ProfessorRow], page: int, per_page: Optional[int] = None):
    per_page = per_page or settings.PER_PAGE
    total_pages = max(1, math.ceil(len(rows) / per_page))
    page = min(max(1, page), total_pages)
    start = (page - 1) * per_page
    return rows[start:start + per_page], page, total_pages


class RosterLoader:
    def __init__(self, store: DocumentStore, cache: RosterCache, prof_role_key: Optional[str] = None):
        self.store = store
        self.cache = cache
        self.prof_role_key = prof_role_key or settings.ROLE_PROF_KEY

    async def _professor_docs(self) -> List[dict]:
        return await self.store.query(USERS, where=[("role_key", "==", self.prof_role_key)])

    async def _assigned_prof_ids(self, year_id: str) -> Set[str]:
        docs = await self.store.query(ASSIGNMENTS, where=[("annee_id", "==", year_id)])
        return {pid for pid in (prof_id_from_assignment(d) for d in docs) if pid}

    async def load_for_year(self, year_id: str, year_label: str) -> List[ProfessorRow]:
        key = self.cache.key_for(year_id, year_label)
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        version = self.cache.version(key)

        if not year_id and not year_label:
            self.cache.set(key, [])
            return []

        rows: Dict[str, ProfessorRow] = {}
        for doc in await self._professor_docs():
            if belongs_to_year(doc, year_id, year_label):
                row = ProfessorRow.from_record(doc)
                rows[row.doc_id] = row

        if year_id:
            missing = [pid for pid in await self._assigned_prof_ids(year_id) if pid not in rows]
            fetched = await asyncio.gather(*(self.store.get(USERS, pid) for pid in missing))
            for doc in fetched:
                if doc is None or doc.get("role_key") != self.prof_role_key:
                    continue
                row = ProfessorRow.from_record(doc)
                rows[row.doc_id] = row

        result = sort_rows(list(rows.values()))
        if not self.cache.set_if_current(key, result, version):
            logging.info("Roster %s invalidated during load, result not cached", key)
        return result

    async def all_professors(self) -> List[ProfessorRow]:
        """Tous les professeurs, toutes années confondues."""
        return sort_rows([ProfessorRow.from_record(d) for d in await self._professor_docs()])

    async def taken_ids_for_year(self, year_id: str, year_label: str) -> Set[str]:
        """Ids déjà membres de l'année (métadonnées ou affectation)."""
        taken = {d["_id"] for d in await self._professor_docs() if belongs_to_year(d, year_id, year_label)}
        if year_id:
            taken |= await self._assigned_prof_ids(year_id)
        return taken


@dataclass
class RosterLoadOutcome:
    rows: List[ProfessorRow]
    key: str
    stale: bool = False


class RosterSession:
    """
    État visible du roster pour une session d'administration.

    Chaque sélection d'année reçoit un numéro de génération ; après la reprise
    du chargement, le résultat n'est appliqué que si aucune sélection plus
    récente n'a été lancée entre-temps (la dernière demande gagne, pas la
    dernière réponse). Les chargements dépassés ne sont pas annulés : leur
    résultat est simplement ignoré.
    """

    def __init__(self, loader: RosterLoader):
        self.loader = loader
        self._generation = 0
        self.visible_key: Optional[str] = None
        self.visible_rows: List[ProfessorRow] = []
        self.loading = False

    async def select_year(self, year_id: str, year_label: str) -> RosterLoadOutcome:
        self._generation += 1
        generation = self._generation
        key = self.loader.cache.key_for(year_id, year_label)
        self.loading = True
        try:
            rows = await self.loader.load_for_year(year_id, year_label)
        finally:
            if generation == self._generation:
                self.loading = False

        if generation != self._generation:
            logging.debug("Roster load for %s superseded, result dropped", key)
            return RosterLoadOutcome(rows=rows, key=key, stale=True)

        self.visible_key = key
        self.visible_rows = rows
        return RosterLoadOutcome(rows=rows, key=key)


class RosterSessionRegistry:
    """Une RosterSession par utilisateur authentifié."""

    def __init__(self, loader: RosterLoader):
        self.loader = loader
        self._sessions: Dict[str, RosterSession] = {}

    def for_user(self, user_id: str) -> RosterSession:
        session = self._sessions.get(user_id)
        if session is None:
            session = self._sessions[user_id] = RosterSession(self.loader)
        return session
