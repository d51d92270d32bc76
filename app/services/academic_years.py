"""
Années académiques (collection `annees_scolaires`, id = libellé "YYYY-YYYY").
"""
import logging
import re
from datetime import date, datetime, time
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo

from app.core.config import settings
from app.core.errors import FormValidationError, NotFoundError
from app.db.store import DocumentStore
from app.models.firestore_models import ACADEMIC_YEARS, AcademicYear
from app.roster_engine.membership import to_datetime

YEAR_RE = re.compile(r"^\d{4}-\d{4}$")


def sanitize_label(value: Optional[str]) -> str:
    return (value or "").replace("<", "").replace(">", "").strip()


def _at_midnight(d: date, tz_name: str) -> datetime:
    return datetime.combine(d, time(), tzinfo=ZoneInfo(tz_name))


def year_to_dict(year: AcademicYear) -> Dict[str, Any]:
    """Projection renvoyée à la console (dates en YYYY-MM-DD)."""
    tz = ZoneInfo(year.timezone or settings.DEFAULT_TIMEZONE)
    return {
        "id": year.id,
        "label": year.label,
        "date_debut": year.date_debut.astimezone(tz).date().isoformat() if year.date_debut else None,
        "date_fin": year.date_fin.astimezone(tz).date().isoformat() if year.date_fin else None,
        "timezone": year.timezone,
        "active": year.active,
    }


def default_year(years: List[AcademicYear]) -> Optional[AcademicYear]:
    """L'année active, sinon la première de la liste."""
    for y in years:
        if y.active:
            return y
    return years[0] if years else None


class AcademicYearService:
    def __init__(self, store: DocumentStore):
        self.store = store

    @staticmethod
    def _from_doc(doc: Dict[str, Any]) -> AcademicYear:
        tz_name = doc.get("timezone") or settings.DEFAULT_TIMEZONE
        return AcademicYear(
            id=doc["_id"],
            label=str(doc.get("label") or doc["_id"]),
            date_debut=to_datetime(doc.get("date_debut"), tz_name),
            date_fin=to_datetime(doc.get("date_fin"), tz_name),
            timezone=tz_name,
            active=bool(doc.get("active")),
        )

    async def list_years(self) -> List[AcademicYear]:
        docs = await self.store.query(ACADEMIC_YEARS, order_by="label", descending=True)
        years = [self._from_doc(d) for d in docs]
        if not years:
            label = settings.DEFAULT_ACADEMIC_YEAR
            return [AcademicYear(id=label, label=label, timezone=settings.DEFAULT_TIMEZONE)]
        return years

    async def get_year(self, year_id: str) -> AcademicYear:
        doc = await self.store.get(ACADEMIC_YEARS, year_id)
        if doc is None:
            raise NotFoundError("Année académique", year_id)
        return self._from_doc(doc)

    async def create_year(
        self,
        label: str,
        date_debut: Optional[date],
        date_fin: Optional[date],
        timezone: Optional[str] = None,
        active: bool = False,
    ) -> AcademicYear:
        label = sanitize_label(label)
        if not label:
            raise FormValidationError({"label": "Saisissez un libellé (ex: 2025-2026)."})
        if not YEAR_RE.match(label):
            raise FormValidationError({"label": "Format invalide. Utilisez YYYY-YYYY (ex: 2025-2026)."})
        left, right = (int(p) for p in label.split("-"))
        if right != left + 1:
            raise FormValidationError({"label": "L'année de droite doit être égale à l'année de gauche + 1."})
        if not date_debut or not date_fin:
            raise FormValidationError({"dates": "Renseignez début et fin d'année."})
        if date_fin < date_debut:
            raise FormValidationError({"date_fin": "La date de fin doit être postérieure à la date de début."})

        if await self.store.get(ACADEMIC_YEARS, label) is not None:
            raise FormValidationError({"label": "Cette année académique existe déjà."})

        tz_name = timezone or settings.DEFAULT_TIMEZONE
        start = _at_midnight(date_debut, tz_name)
        end = _at_midnight(date_fin, tz_name)
        await self.store.set(
            ACADEMIC_YEARS,
            label,
            {
                "label": label,
                "date_debut": start,
                "date_fin": end,
                "timezone": tz_name,
                "active": bool(active),
                "created_at": self.store.server_timestamp(),
            },
        )
        logging.info("Academic year %s created", label)
        return AcademicYear(id=label, label=label, date_debut=start, date_fin=end, timezone=tz_name, active=bool(active))

    async def update_year(
        self,
        year_id: str,
        date_debut: Optional[date] = None,
        date_fin: Optional[date] = None,
        timezone: Optional[str] = None,
        active: Optional[bool] = None,
    ) -> AcademicYear:
        current = await self.get_year(year_id)
        tz_name = timezone or current.timezone or settings.DEFAULT_TIMEZONE

        payload: Dict[str, Any] = {}
        if isinstance(timezone, str):
            payload["timezone"] = timezone
        if isinstance(active, bool):
            payload["active"] = active
        if date_debut:
            payload["date_debut"] = _at_midnight(date_debut, tz_name)
        if date_fin:
            payload["date_fin"] = _at_midnight(date_fin, tz_name)

        if not payload:
            return current

        await self.store.set(ACADEMIC_YEARS, year_id, payload, merge=True)
        return current.model_copy(update=payload)
