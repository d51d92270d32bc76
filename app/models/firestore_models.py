"""
Pydantic models for the Firestore documents the roster engine reads and writes.
Thin wrappers mapping Firestore documents <-> Pydantic models; every model
tolerates extra fields since legacy documents carry more than we read.
"""
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime

# Collections
USERS = "users"
ROLES = "roles"
ACADEMIC_YEARS = "annees_scolaires"
ASSIGNMENTS = "affectations_professeurs"
FILIERES = "filieres"
CLASSES = "classes"
MATIERES = "matieres"
TIMETABLES = "edts"


class FirestoreModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True, extra="ignore")

    id: Optional[str] = None


def assignment_key(year_id: str, prof_id: str) -> str:
    return f"{year_id}__{prof_id}"


def prof_id_from_assignment(doc: Dict[str, Any]) -> str:
    """prof_doc_id stored on the record, else the suffix of the "{year}__{prof}" key."""
    from_field = str(doc.get("prof_doc_id") or "")
    if from_field:
        return from_field
    key = str(doc.get("_id") or "")
    return key.split("__")[1] if "__" in key else ""


class ProfessorRow(BaseModel):
    """Roster line: the subset of a professor record the list view needs."""

    doc_id: str
    id: Optional[int] = None
    nom: str = ""
    prenom: str = ""
    specialite: str = ""
    role_id: Optional[str] = None
    role_libelle: Optional[str] = None
    role_key: Optional[str] = None

    @classmethod
    def from_record(cls, doc: Dict[str, Any]) -> "ProfessorRow":
        seq = doc.get("id") if isinstance(doc.get("id"), int) else None
        return cls(
            doc_id=str(doc["_id"]),
            id=seq,
            nom=doc.get("nom") or "",
            prenom=doc.get("prenom") or "",
            specialite=doc.get("specialite") or doc.get("specialty") or "",
            role_id=str(doc["role_id"]) if doc.get("role_id") is not None else None,
            role_libelle=doc.get("role_libelle"),
            role_key=doc.get("role_key"),
        )


class Disponibilite(BaseModel):
    jour: str = ""
    debut: str = ""
    fin: str = ""


class Diplome(BaseModel):
    intitule: str = ""
    niveau: str = ""
    annee: str = ""
    etablissement: str = ""


class Experience(BaseModel):
    annees: int = 0
    etablissements: List[str] = []


class Competences(BaseModel):
    outils: List[str] = []
    langues: List[str] = []
    publications: List[str] = []


class ProfessorRecord(FirestoreModel):
    """Full professor projection (detail view). The record's document id is `doc_id`;
    `seq` is the informational sequence number stored under the field `id`."""

    doc_id: str = ""
    seq: Optional[int] = None
    nom: str = ""
    prenom: str = ""
    email: str = ""
    login: str = ""
    specialite: str = ""
    specialite_detaillee: str = ""
    role_id: Optional[str] = None
    role_libelle: Optional[str] = None
    role_key: Optional[str] = None
    telephone: str = ""
    telephone_local: str = ""
    adresse: str = ""
    date_naissance: str = ""
    lieu_naissance: str = ""
    nationalite: str = ""
    sexe: str = ""
    situation_matrimoniale: str = ""
    cni_passeport: str = ""
    statut: str = ""
    fonction_principale: str = ""
    disponibilites: List[Disponibilite] = []
    elements_constitutifs: List[str] = []
    experience_enseignement: Experience = Field(default_factory=Experience)
    diplomes: List[Diplome] = []
    niveaux_enseignement: List[str] = []
    competences: Competences = Field(default_factory=Competences)
    rib: Optional[str] = None
    documents: Dict[str, Optional[str]] = {}
    auth_uid: Optional[str] = None
    academic_year_id: Optional[str] = None
    academic_year_label: Optional[str] = None

    @classmethod
    def from_store(cls, doc: Dict[str, Any]) -> "ProfessorRecord":
        data = dict(doc)
        data["doc_id"] = str(data.pop("_id"))
        seq = data.pop("id", None)
        data["seq"] = seq if isinstance(seq, int) else None
        if data.get("role_id") is not None:
            data["role_id"] = str(data["role_id"])
        data["specialite"] = data.get("specialite") or data.get("specialty") or ""
        for key in ("disponibilites", "elements_constitutifs", "diplomes", "niveaux_enseignement"):
            if not isinstance(data.get(key), list):
                data[key] = []
        for key in ("experience_enseignement", "competences", "documents"):
            if not isinstance(data.get(key), dict):
                data.pop(key, None)
        return cls.model_validate(data)


class AcademicYear(FirestoreModel):
    label: str
    date_debut: Optional[datetime] = None
    date_fin: Optional[datetime] = None
    timezone: str = "Africa/Dakar"
    active: bool = False


class ClassAssignment(BaseModel):
    filiere_id: str
    filiere_libelle: str = ""
    classe_id: str
    classe_libelle: str = ""
    matieres_ids: List[str] = []
    matieres_libelles: List[str] = []


class Filiere(FirestoreModel):
    libelle: str = ""
    section: Optional[str] = None
    academic_year_id: str = ""


class Classe(FirestoreModel):
    libelle: str = ""
    filiere_id: str = ""
    filiere_libelle: str = ""
    academic_year_id: str = ""


class Matiere(FirestoreModel):
    libelle: str = ""
    class_id: str = ""


class ScheduleSlot(BaseModel):
    day: int = 0
    start: str = ""
    end: str = ""
    matiere_id: Optional[str] = None
    matiere_libelle: Optional[str] = None
    enseignant: Optional[str] = None
    salle: Optional[str] = None


class ScheduleRow(BaseModel):
    day: int
    day_label: str = ""
    class_id: str
    class_libelle: str = ""
    matiere_libelle: str = ""
    start: str = ""
    end: str = ""
    salle: str = ""


__all__ = [
    "FirestoreModel",
    "ProfessorRow",
    "ProfessorRecord",
    "AcademicYear",
    "ClassAssignment",
    "Filiere",
    "Classe",
    "Matiere",
    "ScheduleSlot",
    "ScheduleRow",
    "assignment_key",
    "prof_id_from_assignment",
]
