"""
Configuration pytest pour les tests.

Les tests tournent contre le magasin en mémoire et un faux fournisseur de
comptes : aucun accès réseau, aucune initialisation Firebase.
"""
from datetime import datetime, timezone
from types import SimpleNamespace

import httpx
import pytest

from app.core.errors import StoreError
from app.core.security import get_current_user
from app.db.memory import InMemoryDocumentStore
from app.roster_engine import RosterCache, RosterLoader

YEAR = "2025-2026"
PREV_YEAR = "2024-2025"


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def professor(nom, prenom, **extra):
    doc = {"nom": nom, "prenom": prenom, "role_key": "prof", "role_libelle": "Professeur", "specialite": "Maths"}
    doc.update(extra)
    return doc


def seed_data():
    """Jeu de données de référence : une année 2025-2026 et ses professeurs."""
    return {
        "users": {
            "P1": professor("Diop", "Awa", academic_year_id=YEAR, createdAt=utc(2023, 1, 1)),
            "P2": professor("Ndiaye", "Moussa", createdAt=utc(2025, 8, 10)),
            "P3": professor("Sow", "Ibrahima", academic_year_id=PREV_YEAR, createdAt=utc(2025, 9, 1)),
            "P4": professor("Éboué", "Marie", createdAt=utc(2025, 8, 10)),
            "P5": professor("Ba", "Coumba", academic_year_id=PREV_YEAR, academic_year_label=PREV_YEAR),
            "DIR": {
                "nom": "Fall",
                "prenom": "Aminata",
                "email": "direction@ecole.sn",
                "role_key": "directeur-des-etudes",
                "role_libelle": "Directeur des études",
                "auth_uid": "uid-dir",
            },
        },
        "roles": {
            "R1": {"libelle": "Professeur"},
            "R2": {"libelle": "Directeur des études"},
        },
        "annees_scolaires": {
            PREV_YEAR: {"label": PREV_YEAR, "timezone": "Africa/Dakar", "active": False},
            YEAR: {"label": YEAR, "timezone": "Africa/Dakar", "active": True},
        },
        "affectations_professeurs": {
            f"{YEAR}__P4": {"annee_id": YEAR, "prof_doc_id": "P4", "classes": []},
            f"{YEAR}__P1": {"annee_id": YEAR, "classes": []},
        },
        "filieres": {
            "F1": {"libelle": "Génie logiciel", "section": "Informatique", "academic_year_id": YEAR},
            "F2": {"libelle": "Comptabilité", "section": "Gestion", "academic_year_id": YEAR},
            "F3": {"libelle": "Ancienne filière", "section": "Informatique", "academic_year_id": PREV_YEAR},
        },
        "classes": {
            "C1": {"libelle": "L1 GL", "filiere_id": "F1", "academic_year_id": YEAR},
            "C2": {"libelle": "L1 Compta", "filiere_id": "F2", "academic_year_id": YEAR},
            "C9": {"libelle": "L1 ancienne", "filiere_id": "F3", "academic_year_id": PREV_YEAR},
        },
        "matieres": {
            "M1": {"libelle": "Algorithmique", "class_id": "C1"},
            "M2": {"libelle": "Réseaux", "class_id": "C1"},
            "M3": {"libelle": "Bases de données", "class_id": "C1"},
            "M4": {"libelle": "Comptabilité générale", "class_id": "C2"},
            "M9": {"libelle": "Matière ancienne", "class_id": "C9"},
        },
    }


class FakeProvisioner:
    """Remplace Firebase Auth : renvoie des uid prévisibles ou lève l'erreur configurée."""

    def __init__(self):
        self.created = []
        self.error = None

    async def create_account(self, email, password, display_name=None):
        if self.error is not None:
            raise self.error
        self.created.append((email, display_name))
        return f"uid-{len(self.created)}"


class FailingStore(InMemoryDocumentStore):
    """Magasin dont les écritures (ou toutes les opérations) échouent à la demande."""

    def __init__(self, seed=None):
        super().__init__(seed)
        self.fail_writes = False
        self.fail_reads = False

    def _maybe_fail(self, operation, collection, write):
        if (write and self.fail_writes) or (not write and self.fail_reads):
            raise StoreError(operation, collection, RuntimeError("unavailable"))

    async def get(self, collection, doc_id):
        self._maybe_fail("get", collection, False)
        return await super().get(collection, doc_id)

    async def query(self, collection, where=None, order_by=None, descending=False, limit=None):
        self._maybe_fail("query", collection, False)
        return await super().query(collection, where, order_by, descending, limit)

    async def set(self, collection, doc_id, data, merge=False):
        self._maybe_fail("set", collection, True)
        return await super().set(collection, doc_id, data, merge)

    async def add(self, collection, data):
        self._maybe_fail("add", collection, True)
        return await super().add(collection, data)

    async def delete(self, collection, doc_id):
        self._maybe_fail("delete", collection, True)
        return await super().delete(collection, doc_id)


@pytest.fixture
def store():
    return FailingStore(seed_data())


@pytest.fixture
def cache():
    return RosterCache()


@pytest.fixture
def loader(store, cache):
    return RosterLoader(store, cache)


@pytest.fixture
def provisioner():
    return FakeProvisioner()


@pytest.fixture
def manager_user():
    return SimpleNamespace(
        id="uid-dir",
        email="direction@ecole.sn",
        display_name="Aminata Fall",
        role_libelle="Directeur des études",
        role_key="directeur-des-etudes",
        is_active=True,
        is_manager=True,
        raw={},
    )


@pytest.fixture
def api_app(store, provisioner, manager_user):
    from app.main import app, build_app_state

    build_app_state(app, store, provisioner)
    app.dependency_overrides[get_current_user] = lambda: manager_user
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def client(api_app):
    transport = httpx.ASGITransport(app=api_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def form_data(**overrides):
    """Saisie valide du formulaire professeur."""
    data = {
        "role_id": "R1",
        "prenom": "Jean",
        "nom": "Dupont",
        "email": "jean.dupont@ecole.sn",
        "login": "jdupont",
        "password": "secret123",
        "specialite": "Informatique",
        "date_naissance": "1980-05-04",
        "lieu_naissance": "Dakar",
        "nationalite": "Sénégalaise",
        "sexe": "M",
        "situation_matrimoniale": "Marié",
        "cni_passeport": "1234567890",
        "telephone_local": "771234567",
        "year_id": YEAR,
        "year_label": YEAR,
    }
    data.update(overrides)
    return data
