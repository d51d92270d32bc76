import logging
from typing import Any

from fastapi import APIRouter, Depends

from app.api.deps import get_years
from app.core.errors import StoreError
from app.core.security import get_current_active_user, require_manager
from app.schemas.professors import AcademicYearCreate, AcademicYearPatch
from app.services.academic_years import AcademicYearService, default_year, year_to_dict


router = APIRouter()


@router.get("")
async def list_academic_years(
    service: AcademicYearService = Depends(get_years),
    current_user: Any = Depends(get_current_active_user),
):
    """Années triées par libellé décroissant, avec l'année proposée par défaut."""
    try:
        years = await service.list_years()
    except StoreError:
        logging.exception("Loading academic years failed")
        return {"ok": False, "error": "Erreur lors du chargement des années."}
    selected = default_year(years)
    return {
        "ok": True,
        "years": [year_to_dict(y) for y in years],
        "default_id": selected.id if selected else None,
    }


@router.post("")
async def create_academic_year(
    payload: AcademicYearCreate,
    service: AcademicYearService = Depends(get_years),
    current_user: Any = Depends(require_manager),
):
    try:
        year = await service.create_year(
            payload.label, payload.date_debut, payload.date_fin, payload.timezone, payload.active
        )
    except StoreError:
        logging.exception("Academic year creation failed")
        return {"ok": False, "error": "Création impossible."}
    return {"ok": True, "year": year_to_dict(year), "message": "Année académique créée."}


@router.patch("/{year_id}")
async def update_academic_year(
    year_id: str,
    payload: AcademicYearPatch,
    service: AcademicYearService = Depends(get_years),
    current_user: Any = Depends(require_manager),
):
    try:
        year = await service.update_year(
            year_id,
            date_debut=payload.date_debut,
            date_fin=payload.date_fin,
            timezone=payload.timezone,
            active=payload.active,
        )
    except StoreError:
        logging.exception("Academic year %s update failed", year_id)
        return {"ok": False, "error": "Mise à jour impossible."}
    return {"ok": True, "year": year_to_dict(year)}
