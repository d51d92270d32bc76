import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends

from app.api.deps import (
    get_login_check,
    get_loader,
    get_professors,
    get_projector,
    get_reconciler,
    get_roster_session,
)
from app.core.errors import StoreError
from app.core.security import require_manager
from app.roster_engine import AssignmentReconciler, RosterLoader, RosterSession, ScheduleProjector
from app.roster_engine.loader import paginate, search_rows
from app.schemas.professors import AssignmentPayload, ProfessorForm, RosterPage, TakeRequest, TransferRequest
from app.services.login_check import DebouncedLoginCheck
from app.services.professors import ProfessorService


router = APIRouter()


@router.get("")
async def list_professors(
    year_id: str = "",
    year_label: str = "",
    search: str = "",
    page: int = 1,
    session: RosterSession = Depends(get_roster_session),
):
    """Roster de l'année sélectionnée, filtré et paginé."""
    try:
        outcome = await session.select_year(year_id, year_label)
    except StoreError:
        logging.exception("Roster load failed for year %s", year_id or year_label)
        return {"ok": False, "error": "Erreur lors du chargement des professeurs."}

    rows = search_rows(outcome.rows, search)
    page_rows, page, total_pages = paginate(rows, page)
    return RosterPage(
        key=outcome.key,
        stale=outcome.stale,
        rows=page_rows,
        total=len(rows),
        page=page,
        total_pages=total_pages,
    ).model_dump()


@router.get("/all")
async def list_all_professors(
    loader: RosterLoader = Depends(get_loader),
    current_user: Any = Depends(require_manager),
):
    """Tous les professeurs, pour la sélection "ajouter des existants"."""
    try:
        rows = await loader.all_professors()
    except StoreError:
        logging.exception("Loading all professors failed")
        return {"ok": False, "error": "Erreur lors du chargement des professeurs."}
    return {"ok": True, "rows": [r.model_dump() for r in rows]}


@router.get("/taken")
async def taken_professors(
    year_id: str = "",
    year_label: str = "",
    loader: RosterLoader = Depends(get_loader),
    current_user: Any = Depends(require_manager),
):
    try:
        taken = await loader.taken_ids_for_year(year_id, year_label)
    except StoreError:
        logging.exception("Loading taken professors failed for year %s", year_id)
        return {"ok": False, "error": "Erreur lors du chargement des professeurs."}
    return {"ok": True, "ids": sorted(taken)}


@router.get("/login-availability")
async def login_availability(
    login: str,
    doc_id: Optional[str] = None,
    checker: DebouncedLoginCheck = Depends(get_login_check),
    current_user: Any = Depends(require_manager),
):
    status = await checker.check(current_user.id, login, exclude_doc_id=doc_id)
    return {"ok": True, "login": login, "status": status.value}


@router.post("/take")
async def take_professors(
    payload: TakeRequest,
    reconciler: AssignmentReconciler = Depends(get_reconciler),
    current_user: Any = Depends(require_manager),
):
    """Rattache des professeurs existants à l'année."""
    try:
        await reconciler.take_for_year(payload.prof_ids, payload.year_id)
    except StoreError:
        logging.exception("Take for year %s failed", payload.year_id)
        return {"ok": False, "error": "Action impossible."}
    return {"ok": True, "message": "Professeur(s) pris pour l’année."}


@router.post("")
async def create_professor(
    form: ProfessorForm,
    service: ProfessorService = Depends(get_professors),
    current_user: Any = Depends(require_manager),
):
    try:
        doc_id = await service.create(form)
    except StoreError:
        logging.exception("Professor creation failed")
        return {"ok": False, "error": "Enregistrement impossible."}
    return {"ok": True, "id": doc_id, "message": "Professeur créé."}


@router.get("/{prof_id}")
async def get_professor(
    prof_id: str,
    service: ProfessorService = Depends(get_professors),
    current_user: Any = Depends(require_manager),
):
    try:
        record = await service.detail(prof_id)
    except StoreError:
        logging.exception("Loading professor %s failed", prof_id)
        return {"ok": False, "error": "Chargement impossible."}
    return {"ok": True, "professor": record.model_dump(mode="json")}


@router.put("/{prof_id}")
async def update_professor(
    prof_id: str,
    form: ProfessorForm,
    service: ProfessorService = Depends(get_professors),
    current_user: Any = Depends(require_manager),
):
    try:
        await service.update(prof_id, form)
    except StoreError:
        logging.exception("Professor %s update failed", prof_id)
        return {"ok": False, "error": "Enregistrement impossible."}
    return {"ok": True, "message": "Professeur mis à jour."}


@router.delete("/{prof_id}")
async def delete_professor(
    prof_id: str,
    service: ProfessorService = Depends(get_professors),
    current_user: Any = Depends(require_manager),
):
    try:
        await service.delete(prof_id)
    except StoreError:
        logging.exception("Professor %s deletion failed", prof_id)
        return {"ok": False, "error": "Suppression impossible. Réessayez."}
    return {"ok": True, "message": "Professeur supprimé."}


@router.get("/{prof_id}/assignments/{year_id}")
async def get_assignments(
    prof_id: str,
    year_id: str,
    reconciler: AssignmentReconciler = Depends(get_reconciler),
    current_user: Any = Depends(require_manager),
):
    try:
        entries = await reconciler.load_assignment(year_id, prof_id)
    except StoreError:
        logging.exception("Loading assignments %s/%s failed", year_id, prof_id)
        return {"ok": False, "error": "Chargement impossible."}
    return {"ok": True, "entries": [e.model_dump() for e in entries]}


@router.put("/{prof_id}/assignments/{year_id}")
async def save_assignments(
    prof_id: str,
    year_id: str,
    payload: AssignmentPayload,
    reconciler: AssignmentReconciler = Depends(get_reconciler),
    current_user: Any = Depends(require_manager),
):
    try:
        classes = await reconciler.save_assignment(year_id, prof_id, payload.entries)
    except StoreError:
        logging.exception("Saving assignments %s/%s failed", year_id, prof_id)
        return {"ok": False, "error": "Enregistrement impossible."}
    return {"ok": True, "message": "Affectations enregistrées.", "classes": [c.model_dump() for c in classes]}


@router.post("/{prof_id}/transfer")
async def transfer_professor(
    prof_id: str,
    payload: TransferRequest,
    reconciler: AssignmentReconciler = Depends(get_reconciler),
    current_user: Any = Depends(require_manager),
):
    try:
        await reconciler.transfer_to_year(prof_id, payload.dest_year_id, payload.source_year_id)
    except StoreError:
        logging.exception("Transfer of %s to %s failed", prof_id, payload.dest_year_id)
        return {"ok": False, "error": "Transfert impossible."}
    return {"ok": True, "message": "Professeur transféré."}


@router.delete("/{prof_id}/years/{year_id}")
async def remove_from_year(
    prof_id: str,
    year_id: str,
    year_label: str = "",
    reconciler: AssignmentReconciler = Depends(get_reconciler),
    current_user: Any = Depends(require_manager),
):
    try:
        cleared = await reconciler.remove_from_year(prof_id, year_id, year_label)
    except StoreError:
        logging.exception("Removing %s from year %s failed", prof_id, year_id)
        return {"ok": False, "error": "Retrait impossible."}
    return {"ok": True, "message": "Professeur retiré de l’année sélectionnée.", "metadata_cleared": cleared}


@router.get("/{prof_id}/schedule/{year_id}")
async def professor_schedule(
    prof_id: str,
    year_id: str,
    projector: ScheduleProjector = Depends(get_projector),
    current_user: Any = Depends(require_manager),
):
    try:
        rows = await projector.schedule_for(year_id, prof_id)
    except StoreError:
        logging.exception("Schedule of %s for %s failed", prof_id, year_id)
        return {"ok": False, "error": "Chargement de l’emploi du temps impossible."}
    return {"ok": True, "rows": [r.model_dump() for r in rows]}
