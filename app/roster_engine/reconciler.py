"""
Affectations (classe + matières) d'un professeur pour une année.

Un document par couple (année, professeur), clé "{annee}__{prof}". Toutes les
écritures précèdent l'invalidation du cache : une écriture en échec lève
StoreError et laisse le cache intact.
"""
import asyncio
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from pydantic import BaseModel

from app.core.errors import FormValidationError
from app.db.store import DocumentStore
from app.models.firestore_models import ACADEMIC_YEARS, ASSIGNMENTS, USERS, ClassAssignment, assignment_key
from app.roster_engine.cache import RosterCache
from app.roster_engine.membership import cleared_year_fields
from app.roster_engine.reference import YearScope, load_scope, normalize_section


class DraftEntry(BaseModel):
    section: str
    filiere_id: str
    classe_id: str
    matieres_ids: List[str]


class Draft(BaseModel):
    """Sélection en cours de saisie (tous les champs encore optionnels)."""

    section: Optional[str] = None
    filiere_id: Optional[str] = None
    classe_id: Optional[str] = None
    matieres_ids: List[str] = []


@dataclass
class DraftList:
    """
    Liste d'affectations en cours de saisie. Avec un `scope`, la filière et la
    classe doivent exister dans l'année et la classe appartenir à la filière.
    """

    entries: List[DraftEntry] = field(default_factory=list)
    scope: Optional[YearScope] = None

    def add(self, draft: Draft) -> Optional[str]:
        """Ajoute la sélection ; renvoie le message d'erreur, ou None si ajoutée."""
        if not normalize_section(draft.section):
            return "Sélectionnez une section."
        if not draft.filiere_id:
            return "Sélectionnez une filière."
        if not draft.classe_id:
            return "Sélectionnez une classe."
        if not draft.matieres_ids:
            return "Cochez au moins une matière."
        if self.scope is not None:
            error = scope_error(draft, self.scope)
            if error:
                return error
        if any(e.classe_id == draft.classe_id for e in self.entries):
            return "Cette classe est déjà dans la liste d’affectations."
        self.entries.append(
            DraftEntry(
                section=draft.section,
                filiere_id=draft.filiere_id,
                classe_id=draft.classe_id,
                matieres_ids=list(draft.matieres_ids),
            )
        )
        return None

    def remove(self, classe_id: str) -> None:
        self.entries = [e for e in self.entries if e.classe_id != classe_id]


def scope_error(draft: Draft, scope: YearScope) -> Optional[str]:
    if draft.filiere_id not in scope.filiere_by_id:
        return "Filière inconnue pour cette année."
    if scope.section_of(draft.filiere_id) != draft.section:
        return "Cette filière n’appartient pas à la section choisie."
    classes = scope.classes_by_filiere.get(draft.filiere_id, [])
    if not any(c.id == draft.classe_id for c in classes):
        return "Classe inconnue pour cette filière."
    known = {m.id for m in scope.matieres_by_class.get(draft.classe_id, [])}
    if any(mid not in known for mid in draft.matieres_ids):
        return "Matière inconnue pour cette classe."
    return None


def dedupe_by_classe(entries: List[DraftEntry]) -> List[DraftEntry]:
    by_classe: Dict[str, DraftEntry] = {}
    for e in entries:
        by_classe[e.classe_id] = e
    return list(by_classe.values())


def snapshot_classes(entries: List[DraftEntry], scope: YearScope) -> List[ClassAssignment]:
    """Fige les libellés au moment de l'enregistrement ; ils ne sont plus relus ensuite."""
    out = []
    for e in dedupe_by_classe(entries):
        classe = scope.class_by_id.get(e.classe_id)
        filiere = scope.filiere_by_id.get(e.filiere_id)
        labels = [lab for lab in (scope.matiere_label(e.classe_id, mid) for mid in e.matieres_ids) if lab]
        out.append(
            ClassAssignment(
                filiere_id=e.filiere_id,
                filiere_libelle=filiere.libelle if filiere else "",
                classe_id=e.classe_id,
                classe_libelle=classe.libelle if classe else e.classe_id,
                matieres_ids=list(e.matieres_ids),
                matieres_libelles=labels,
            )
        )
    return out


class AssignmentReconciler:
    def __init__(self, store: DocumentStore, cache: RosterCache):
        self.store = store
        self.cache = cache

    async def load_assignment(self, year_id: str, prof_id: str, scope: Optional[YearScope] = None) -> List[DraftEntry]:
        """Affectations enregistrées, sans les références devenues invalides pour l'année."""
        scope = scope or await load_scope(self.store, year_id)
        doc = await self.store.get(ASSIGNMENTS, assignment_key(year_id, prof_id))
        if doc is None:
            return []
        entries = []
        for c in doc.get("classes") or []:
            classe_id = str(c.get("classe_id") or "")
            classe = scope.class_by_id.get(classe_id)
            if classe is None:
                continue
            filiere_id = str(c.get("filiere_id") or classe.filiere_id or "")
            section = scope.section_of(filiere_id)
            if not filiere_id or section is None:
                continue
            known = {m.id for m in scope.matieres_by_class.get(classe_id, [])}
            mats = [str(mid) for mid in (c.get("matieres_ids") or []) if str(mid) in known]
            entries.append(DraftEntry(section=section, filiere_id=filiere_id, classe_id=classe_id, matieres_ids=mats))
        return entries

    async def _upsert(self, year_id: str, prof_id: str, classes: Optional[list]) -> None:
        """classes=None conserve les classes d'un document existant."""
        key = assignment_key(year_id, prof_id)
        old = await self.store.get(ASSIGNMENTS, key)
        if classes is None:
            classes = (old or {}).get("classes") or []
        payload = {
            "annee_id": year_id,
            "prof_doc_id": prof_id,
            "classes": classes,
            "updatedAt": self.store.server_timestamp(),
        }
        if old is None:
            payload["createdAt"] = self.store.server_timestamp()
        await self.store.set(ASSIGNMENTS, key, payload, merge=True)

    async def save_assignment(
        self, year_id: str, prof_id: str, entries: List[DraftEntry], scope: Optional[YearScope] = None
    ) -> List[ClassAssignment]:
        if not year_id:
            raise FormValidationError({"annee_id": "Choisissez une année scolaire."})
        if not entries:
            raise FormValidationError({"classes": "Ajoutez au moins une affectation."})
        scope = scope or await load_scope(self.store, year_id)
        drafts = DraftList(scope=scope)
        for e in dedupe_by_classe(entries):
            error = drafts.add(Draft(**e.model_dump()))
            if error:
                raise FormValidationError({"classes": f"{e.classe_id or '?'} : {error}"})
        classes = snapshot_classes(drafts.entries, scope)
        await self._upsert(year_id, prof_id, [c.model_dump() for c in classes])
        self.cache.invalidate_year(year_id)
        return classes

    async def transfer_to_year(self, prof_id: str, dest_year_id: str, source_year_id: Optional[str] = None) -> None:
        """
        Rattache le professeur à l'année de destination. Un nouveau document part
        sans classes ; avec `source_year_id`, les classes de l'année source sont
        recopiées.
        """
        if not dest_year_id:
            raise FormValidationError({"annee_id": "Choisissez une année scolaire."})
        classes = None
        if source_year_id:
            src = await self.store.get(ASSIGNMENTS, assignment_key(source_year_id, prof_id))
            classes = (src or {}).get("classes") or []
        await self._upsert(dest_year_id, prof_id, classes)
        self.cache.invalidate_year(dest_year_id)

    async def _year_label(self, year_id: str) -> str:
        """Libellé stocké de l'année ; à défaut l'id, les deux coïncidant pour `annees_scolaires`."""
        doc = await self.store.get(ACADEMIC_YEARS, year_id)
        return str((doc or {}).get("label") or year_id)

    async def remove_from_year(self, prof_id: str, year_id: str, year_label: str) -> bool:
        """
        Supprime l'affectation de l'année. Les métadonnées d'année du professeur ne
        sont neutralisées que si elles désignent cette année-ci. Renvoie True si
        elles l'ont été.
        """
        if not year_id:
            raise FormValidationError({"annee_id": "Aucune année sélectionnée."})
        if not year_label:
            year_label = await self._year_label(year_id)
        await self.store.delete(ASSIGNMENTS, assignment_key(year_id, prof_id))

        # l'affectation a disparu : le roster de l'année est périmé même si la suite échoue
        try:
            cleared = False
            user = await self.store.get(USERS, prof_id)
            if user is not None:
                id_matches = str(user.get("academic_year_id") or "") == year_id
                label_matches = bool(year_label) and str(user.get("academic_year_label") or "") == year_label
                if id_matches or label_matches:
                    await self.store.set(
                        USERS, prof_id, {**cleared_year_fields(), "updatedAt": self.store.server_timestamp()}, merge=True
                    )
                    cleared = True
        finally:
            self.cache.invalidate_year(year_id, year_label)
        return cleared

    async def take_for_year(self, prof_ids: List[str], dest_year_id: str) -> None:
        if not dest_year_id:
            raise FormValidationError({"annee_id": "Choisissez une année scolaire."})
        if not prof_ids:
            raise FormValidationError({"prof_ids": "Sélectionnez au moins un professeur."})
        await asyncio.gather(*(self._upsert(dest_year_id, pid, None) for pid in dict.fromkeys(prof_ids)))
        self.cache.invalidate_year(dest_year_id)
