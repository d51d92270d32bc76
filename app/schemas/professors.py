"""
Schémas des requêtes / réponses de l'API professeurs et années académiques.
"""
from datetime import date
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from app.models.firestore_models import (
    Competences,
    Diplome,
    Disponibilite,
    Experience,
    ProfessorRow,
)
from app.roster_engine.reconciler import DraftEntry


class ProfessorForm(BaseModel):
    """Saisie du formulaire professeur (création et édition)."""

    role_id: str = ""
    prenom: str = ""
    nom: str = ""
    email: str = ""
    login: str = ""
    password: Optional[str] = None
    specialite: str = ""
    specialite_detaillee: str = ""
    date_naissance: str = ""
    lieu_naissance: str = ""
    nationalite: str = ""
    sexe: str = ""
    situation_matrimoniale: str = ""
    cni_passeport: str = ""
    adresse: str = ""
    telephone_local: str = ""
    statut: str = ""
    fonction_principale: str = ""
    disponibilites: List[Disponibilite] = []
    elements_constitutifs: List[str] = []
    experience_enseignement: Experience = Field(default_factory=Experience)
    diplomes: List[Diplome] = []
    niveaux_enseignement: List[str] = []
    competences: Competences = Field(default_factory=Competences)
    rib: Optional[str] = None
    # références opaques (aucun téléversement côté serveur)
    documents: Dict[str, Optional[str]] = {}
    # année sélectionnée dans la console
    year_id: str = ""
    year_label: str = ""


class RosterPage(BaseModel):
    ok: bool = True
    key: str
    stale: bool = False
    rows: List[ProfessorRow]
    total: int
    page: int
    total_pages: int


class AssignmentPayload(BaseModel):
    entries: List[DraftEntry] = []


class TransferRequest(BaseModel):
    dest_year_id: str
    source_year_id: Optional[str] = None


class TakeRequest(BaseModel):
    prof_ids: List[str] = []
    year_id: str


class AcademicYearCreate(BaseModel):
    label: str = ""
    date_debut: Optional[date] = None
    date_fin: Optional[date] = None
    timezone: Optional[str] = None
    active: bool = False


class AcademicYearPatch(BaseModel):
    date_debut: Optional[date] = None
    date_fin: Optional[date] = None
    timezone: Optional[str] = None
    active: Optional[bool] = None
