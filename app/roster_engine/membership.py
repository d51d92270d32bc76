"""
Appartenance d'un professeur à une année académique.

Règles, dans l'ordre (la première qui tranche gagne) :
1. un champ "id d'année" du document vaut l'id de l'année ;
2. un champ "libellé d'année" vaut le libellé de l'année ;
3. si le document porte la moindre métadonnée d'année sans correspondance, il
   n'appartient pas à l'année : les métadonnées font autorité et désactivent
   le repli par date ;
4. sinon, repli sur la date de CRÉATION (jamais la date de mise à jour), comparée
   aux bornes de l'année : 1er août de l'année de gauche 00:00:00.000 au
   31 juillet de l'année de droite 23:59:59.999.
"""
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo

from app.core.config import settings

YEAR_ID_FIELDS = ("academic_year_id", "academicYearId", "annee_id", "annee", "year_id")
YEAR_LABEL_FIELDS = ("academic_year_label", "annee_label", "annee_scolaire_label", "year_label")
CREATION_FIELDS = ("createdAt", "created_at", "created", "created_on", "date_creation")

# Encodage stocké de l'état "retiré de l'année" (compatible avec les données existantes)
CLEARED_YEAR_VALUE = "__none__"


class YearMetadataState(str, Enum):
    ABSENT = "absent"
    CLEARED = "cleared"
    ASSIGNED = "assigned"


def _candidates(record: Dict[str, Any], fields: Tuple[str, ...]) -> List[str]:
    return [str(record[f]) for f in fields if record.get(f)]


def year_metadata_state(record: Dict[str, Any]) -> YearMetadataState:
    values = _candidates(record, YEAR_ID_FIELDS) + _candidates(record, YEAR_LABEL_FIELDS)
    if not values:
        return YearMetadataState.ABSENT
    if all(v == CLEARED_YEAR_VALUE for v in values):
        return YearMetadataState.CLEARED
    return YearMetadataState.ASSIGNED


def cleared_year_fields() -> Dict[str, str]:
    """Champs à fusionner dans un document pour le marquer "retiré de son année"."""
    return {"academic_year_id": CLEARED_YEAR_VALUE, "academic_year_label": CLEARED_YEAR_VALUE}


def parse_year_bounds(label: str, tz_name: Optional[str] = None) -> Optional[Tuple[datetime, datetime]]:
    """Bornes [1er août N, 31 juillet N+1] d'un libellé "N-N+1", ou None si invalide."""
    parts = (label or "").strip().split("-")
    if len(parts) != 2 or not all(p.isdigit() and len(p) == 4 for p in parts):
        return None
    left, right = int(parts[0]), int(parts[1])
    if right != left + 1:
        return None
    tz = ZoneInfo(tz_name or settings.DEFAULT_TIMEZONE)
    start = datetime.combine(date(left, 8, 1), time(0, 0, 0, 0), tzinfo=tz)
    end = datetime.combine(date(right, 7, 31), time(23, 59, 59, 999000), tzinfo=tz)
    return start, end


def to_datetime(val: Any, tz_name: Optional[str] = None) -> Optional[datetime]:
    """Firestore Timestamp / datetime, epoch en millisecondes ou chaîne ISO."""
    tz = ZoneInfo(tz_name or settings.DEFAULT_TIMEZONE)
    if val is None or val == "" or isinstance(val, bool):
        return None
    if isinstance(val, datetime):
        d = val
    elif isinstance(val, date):
        d = datetime.combine(val, time())
    elif isinstance(val, (int, float)):
        d = datetime.fromtimestamp(val / 1000, tz=timezone.utc)
    elif isinstance(val, str):
        try:
            d = datetime.fromisoformat(val.replace("Z", "+00:00"))
        except ValueError:
            return None
    elif hasattr(val, "to_datetime"):
        d = val.to_datetime()
    else:
        return None
    return d if d.tzinfo else d.replace(tzinfo=tz)


def belongs_to_year(record: Dict[str, Any], year_id: str, year_label: str, tz_name: Optional[str] = None) -> bool:
    if not year_id and not year_label:
        return False

    ids = _candidates(record, YEAR_ID_FIELDS)
    labels = _candidates(record, YEAR_LABEL_FIELDS)

    if year_id and year_id in ids:
        return True
    if year_label and year_label in labels:
        return True
    if year_metadata_state(record) is not YearMetadataState.ABSENT:
        return False

    bounds = parse_year_bounds(year_label, tz_name) if year_label else None
    if bounds is None:
        return False
    start, end = bounds
    for field in CREATION_FIELDS:
        created = to_datetime(record.get(field), tz_name)
        if created is not None and start <= created <= end:
            return True
    return False
