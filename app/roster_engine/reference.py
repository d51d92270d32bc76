"""
Référentiels (filières, classes, matières) restreints à une année académique.

Filières et classes portent un `academic_year_id` ; une matière appartient à
l'année si sa classe en fait partie. Les collections sont lues en bloc puis
filtrées en mémoire.
"""
import asyncio
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from app.db.store import DocumentStore
from app.models.firestore_models import CLASSES, FILIERES, MATIERES, Classe, Filiere, Matiere

SECTIONS = ("Gestion", "Informatique")


def normalize_section(value) -> Optional[str]:
    return value if value in SECTIONS else None


@dataclass
class YearScope:
    year_id: str
    filieres: List[Filiere] = field(default_factory=list)
    classes: List[Classe] = field(default_factory=list)
    matieres: List[Matiere] = field(default_factory=list)

    def __post_init__(self):
        self.filiere_by_id: Dict[str, Filiere] = {f.id: f for f in self.filieres}
        self.class_by_id: Dict[str, Classe] = {c.id: c for c in self.classes}
        self.classes_by_filiere: Dict[str, List[Classe]] = {}
        for c in self.classes:
            self.classes_by_filiere.setdefault(c.filiere_id, []).append(c)
        self.matieres_by_class: Dict[str, List[Matiere]] = {}
        for m in self.matieres:
            self.matieres_by_class.setdefault(m.class_id, []).append(m)

    def matiere_label(self, classe_id: str, matiere_id: str) -> Optional[str]:
        for m in self.matieres_by_class.get(classe_id, []):
            if m.id == matiere_id:
                return m.libelle
        return None

    def section_of(self, filiere_id: str) -> Optional[str]:
        f = self.filiere_by_id.get(filiere_id)
        return normalize_section(f.section) if f else None


def build_scope(year_id: str, filieres: List[dict], classes: List[dict], matieres: List[dict]) -> YearScope:
    fs = [
        Filiere(
            id=d["_id"],
            libelle=str(d.get("libelle") or d["_id"]),
            section=normalize_section(d.get("section")),
            academic_year_id=str(d.get("academic_year_id") or ""),
        )
        for d in filieres
    ]
    cs = [
        Classe(
            id=d["_id"],
            libelle=str(d.get("libelle") or d["_id"]),
            filiere_id=str(d.get("filiere_id") or ""),
            filiere_libelle=str(d.get("filiere_libelle") or ""),
            academic_year_id=str(d.get("academic_year_id") or ""),
        )
        for d in classes
    ]
    ms = [
        Matiere(id=d["_id"], libelle=str(d.get("libelle") or d["_id"]), class_id=str(d.get("class_id") or ""))
        for d in matieres
    ]
    fs_y = sorted((f for f in fs if f.academic_year_id == year_id), key=lambda f: f.libelle)
    cs_y = sorted((c for c in cs if c.academic_year_id == year_id), key=lambda c: c.libelle)
    class_ids = {c.id for c in cs_y}
    ms_y = sorted((m for m in ms if m.class_id and m.class_id in class_ids), key=lambda m: m.libelle)
    return YearScope(year_id=year_id, filieres=fs_y, classes=cs_y, matieres=ms_y)


async def load_scope(store: DocumentStore, year_id: str) -> YearScope:
    filieres, classes, matieres = await asyncio.gather(
        store.query(FILIERES), store.query(CLASSES), store.query(MATIERES)
    )
    return build_scope(year_id, filieres, classes, matieres)
