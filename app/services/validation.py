"""
Validation et normalisation des saisies du formulaire professeur.
"""
import re
import unicodedata
from typing import Dict, Optional

from app.core.config import settings

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[A-Za-z]{2,}$")
LOGIN_RE = re.compile(r"^[a-zA-Z0-9._-]{3,}$")
PHONE_LOCAL_RE = re.compile(r"^(70|75|76|77|78)\d{7}$")

_TAG_RE = re.compile(r"<[^>]*>?")
_HSPACE_RE = re.compile(r"[^\S\r\n]+")

REQUIRED_PERSONAL_FIELDS = (
    "date_naissance",
    "lieu_naissance",
    "nationalite",
    "sexe",
    "situation_matrimoniale",
    "cni_passeport",
)

MSG_REQUIRED = "Obligatoire."
MSG_LOGIN_TAKEN = "Nom d’utilisateur déjà pris."


def sanitize(value) -> str:
    """Retire les balises et réduit les blancs horizontaux."""
    s = "" if value is None else str(value)
    return _HSPACE_RE.sub(" ", _TAG_RE.sub("", s)).strip()


def strip_accents(value: str) -> str:
    return "".join(c for c in unicodedata.normalize("NFD", value or "") if not unicodedata.combining(c))


def normalize_label(value: str) -> str:
    return strip_accents(value).lower().strip()


def to_role_key(label: str) -> str:
    """'Directeur des études' -> 'directeur-des-etudes'"""
    slug = re.sub(r"[^a-z0-9]+", "-", normalize_label(label))
    return slug.strip("-")


def role_key_for(label: str) -> str:
    return settings.ROLE_PROF_KEY if label.lower().strip() == "professeur" else to_role_key(label)


def local_phone(stored: Optional[str]) -> str:
    """'+221 771234567' -> '771234567'"""
    if not isinstance(stored, str):
        return ""
    return re.sub(r"\s+", "", stored.replace(settings.PHONE_PREFIX, "").strip())


def full_phone(local: str) -> str:
    return f"{settings.PHONE_PREFIX} {local}"


def validate_professor_form(form, creating: bool) -> Dict[str, str]:
    """Erreurs par champ ; dict vide si la saisie est valide."""
    e: Dict[str, str] = {}

    if not form.role_id:
        e["role_id"] = "Rôle obligatoire (Professeur)."

    if not form.prenom or len(form.prenom.strip()) < 2:
        e["prenom"] = "Au moins 2 caractères."
    if not form.nom or len(form.nom.strip()) < 2:
        e["nom"] = "Au moins 2 caractères."
    if not form.email or not EMAIL_RE.match(form.email):
        e["email"] = "Adresse email invalide."
    if not form.login or not LOGIN_RE.match(form.login):
        e["login"] = "3+ caractères (lettres/chiffres . _ -)."
    if creating and (not form.password or len(form.password) < 6):
        e["password"] = "6 caractères minimum."
    if not form.specialite:
        e["specialite"] = MSG_REQUIRED

    for field in REQUIRED_PERSONAL_FIELDS:
        if not getattr(form, field):
            e[field] = MSG_REQUIRED

    if not PHONE_LOCAL_RE.match(form.telephone_local or ""):
        e["telephone_local"] = "Format attendu : 70/75/76/77/78 + 7 chiffres (ex: 771234567)."

    return e
