"""
Emploi du temps d'un professeur, déduit des emplois du temps des classes (edts).

Un créneau est retenu si l'enseignant indiqué est le professeur (comparaison du
nom complet) OU si sa matière fait partie des matières affectées au professeur
dans cette classe.
"""
from typing import Dict, List, Optional, Set

from app.core.config import settings
from app.db.store import DocumentStore
from app.models.firestore_models import ASSIGNMENTS, TIMETABLES, USERS, ScheduleRow, ScheduleSlot, assignment_key

DAY_LABELS = ["Dimanche", "Lundi", "Mardi", "Mercredi", "Jeudi", "Vendredi", "Samedi"]


def day_label(day: int) -> str:
    return DAY_LABELS[day % 7]


def time_to_minutes(hhmm: str) -> int:
    parts = (hhmm or "0:0").split(":")
    try:
        h = int(parts[0] or 0)
        m = int(parts[1] or 0) if len(parts) > 1 else 0
    except ValueError:
        return 0
    return h * 60 + m


def chunk(items: List[str], size: int) -> List[List[str]]:
    return [items[i:i + size] for i in range(0, len(items), size)]


class ScheduleProjector:
    def __init__(self, store: DocumentStore, batch_size: Optional[int] = None):
        self.store = store
        self.batch_size = batch_size or settings.FIRESTORE_IN_LIMIT

    async def _full_name(self, prof_id: str) -> str:
        doc = await self.store.get(USERS, prof_id) or {}
        return f"{doc.get('prenom') or ''} {doc.get('nom') or ''}".strip()

    async def schedule_for(self, year_id: str, prof_id: str) -> List[ScheduleRow]:
        aff = await self.store.get(ASSIGNMENTS, assignment_key(year_id, prof_id))
        if aff is None:
            return []

        allowed_by_class: Dict[str, Set[str]] = {}
        class_ids: List[str] = []
        for c in aff.get("classes") or []:
            cid = str(c.get("classe_id") or "")
            if not cid:
                continue
            if cid not in allowed_by_class:
                class_ids.append(cid)
            allowed_by_class[cid] = {str(x) for x in (c.get("matieres_ids") or [])}
        if not class_ids:
            return []

        full_name = await self._full_name(prof_id)

        rows: List[ScheduleRow] = []
        for ids in chunk(class_ids, self.batch_size):
            docs = await self.store.query(TIMETABLES, where=[("annee", "==", year_id), ("class_id", "in", ids)])
            for edt in docs:
                cid = str(edt.get("class_id") or "")
                allowed = allowed_by_class.get(cid, set())
                for raw in edt.get("slots") or []:
                    slot = ScheduleSlot.model_validate(raw)
                    by_name = bool(full_name) and bool(slot.enseignant) and slot.enseignant.strip() == full_name
                    by_subject = bool(slot.matiere_id) and slot.matiere_id in allowed
                    if not (by_name or by_subject):
                        continue
                    rows.append(
                        ScheduleRow(
                            day=slot.day,
                            day_label=day_label(slot.day),
                            class_id=cid,
                            class_libelle=str(edt.get("class_libelle") or ""),
                            matiere_libelle=slot.matiere_libelle or "",
                            start=slot.start,
                            end=slot.end,
                            salle=slot.salle or "",
                        )
                    )

        rows.sort(key=lambda r: (r.day, time_to_minutes(r.start)))
        return rows
