"""
Fiches professeurs : création, modification, consultation, suppression.

La création passe par le fournisseur de comptes puis écrit le document `users` ;
chaque mutation invalide le cache de roster concerné une fois l'écriture faite.
"""
import logging
from typing import Any, Dict, Optional

from app.core.errors import FormValidationError, NotFoundError, UniquenessConflict
from app.db.store import DocumentStore
from app.models.firestore_models import ROLES, USERS, ProfessorRecord
from app.roster_engine.cache import RosterCache
from app.schemas.professors import ProfessorForm
from app.services.login_check import login_taken
from app.services.validation import (
    MSG_LOGIN_TAKEN,
    full_phone,
    local_phone,
    role_key_for,
    sanitize,
    validate_professor_form,
)

DEFAULT_ROLE_LABEL = "Professeur"


def _clean_list(values) -> list:
    return [s for s in (sanitize(v) for v in values or []) if s]


def professor_payload(form: ProfessorForm, role_libelle: str) -> Dict[str, Any]:
    """Champs écrits à la création comme à la modification (hors année et horodatages)."""
    specialite = sanitize(form.specialite)
    return {
        "role_id": str(form.role_id),
        "role_libelle": role_libelle,
        "role_key": role_key_for(role_libelle),
        "email": sanitize(form.email),
        "login": sanitize(form.login),
        "nom": sanitize(form.nom),
        "prenom": sanitize(form.prenom),
        "specialty": specialite,  # compat
        "specialite": specialite,
        "specialite_detaillee": sanitize(form.specialite_detaillee),
        "date_naissance": form.date_naissance,
        "lieu_naissance": sanitize(form.lieu_naissance),
        "nationalite": sanitize(form.nationalite),
        "sexe": form.sexe,
        "situation_matrimoniale": form.situation_matrimoniale,
        "cni_passeport": sanitize(form.cni_passeport),
        "adresse": sanitize(form.adresse),
        "telephone": full_phone(form.telephone_local),
        "statut": form.statut,
        "fonction_principale": sanitize(form.fonction_principale),
        "disponibilites": [d.model_dump() for d in form.disponibilites],
        "elements_constitutifs": _clean_list(form.elements_constitutifs),
        "experience_enseignement": {
            "annees": int(form.experience_enseignement.annees or 0),
            "etablissements": _clean_list(form.experience_enseignement.etablissements),
        },
        "diplomes": [
            {
                "intitule": sanitize(d.intitule),
                "niveau": d.niveau,
                "annee": sanitize(d.annee),
                "etablissement": sanitize(d.etablissement),
            }
            for d in form.diplomes
        ],
        "niveaux_enseignement": [n for n in form.niveaux_enseignement if n],
        "competences": {
            "outils": _clean_list(form.competences.outils),
            "langues": _clean_list(form.competences.langues),
            "publications": _clean_list(form.competences.publications),
        },
        "rib": sanitize(form.rib) if form.rib else None,
    }


class ProfessorService:
    def __init__(self, store: DocumentStore, cache: RosterCache, provisioner):
        self.store = store
        self.cache = cache
        self.provisioner = provisioner

    async def _validate(self, form: ProfessorForm, doc_id: Optional[str] = None) -> None:
        errors = validate_professor_form(form, creating=doc_id is None)
        if errors:
            raise FormValidationError(errors)
        # unicité du login, revérifiée à l'enregistrement
        if await login_taken(self.store, form.login, exclude_doc_id=doc_id):
            raise UniquenessConflict({"login": MSG_LOGIN_TAKEN})

    async def _role_label(self, role_id: str) -> str:
        role = await self.store.get(ROLES, role_id)
        return str((role or {}).get("libelle") or DEFAULT_ROLE_LABEL)

    async def create(self, form: ProfessorForm) -> str:
        await self._validate(form)

        display_name = f"{sanitize(form.prenom)} {sanitize(form.nom)}".strip()
        auth_uid = await self.provisioner.create_account(form.email, form.password, display_name)

        seq = await self.store.count(USERS) + 1
        role_libelle = await self._role_label(form.role_id)
        data = professor_payload(form, role_libelle)
        data.update(
            {
                "id": seq,
                "documents": {k: v for k, v in (form.documents or {}).items()},
                "auth_uid": auth_uid,
                "first_login": "1",
                "academic_year_id": form.year_id or None,
                "academic_year_label": form.year_label or None,
                "createdAt": self.store.server_timestamp(),
                "updatedAt": self.store.server_timestamp(),
            }
        )
        doc_id = await self.store.add(USERS, data)
        logging.info("Professor %s created (seq=%s, year=%s)", doc_id, seq, form.year_id or form.year_label)
        self.cache.invalidate_year(form.year_id, form.year_label)
        return doc_id

    async def update(self, doc_id: str, form: ProfessorForm) -> None:
        current = await self.store.get(USERS, doc_id)
        if current is None:
            raise NotFoundError("Professeur", doc_id)
        await self._validate(form, doc_id=doc_id)

        role_libelle = await self._role_label(form.role_id)
        data = professor_payload(form, role_libelle)
        # les champs d'année ne sont renseignés que s'ils manquent
        if not current.get("academic_year_id"):
            data["academic_year_id"] = form.year_id or None
        if not current.get("academic_year_label"):
            data["academic_year_label"] = form.year_label or None
        data["updatedAt"] = self.store.server_timestamp()

        await self.store.set(USERS, doc_id, data, merge=True)
        self.cache.clear()

    async def detail(self, doc_id: str) -> ProfessorRecord:
        doc = await self.store.get(USERS, doc_id)
        if doc is None:
            raise NotFoundError("Professeur", doc_id)
        record = ProfessorRecord.from_store(doc)
        return record.model_copy(update={"telephone_local": local_phone(record.telephone)})

    async def delete(self, doc_id: str) -> None:
        """Suppression définitive, toutes années confondues."""
        await self.store.delete(USERS, doc_id)
        logging.info("Professor %s deleted", doc_id)
        self.cache.clear()
