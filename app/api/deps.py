"""
Dépendances FastAPI : accès aux services montés sur `app.state` au démarrage.
"""
from typing import Any

from fastapi import Depends, Request

from app.core.security import require_manager
from app.roster_engine import AssignmentReconciler, RosterLoader, RosterSession, ScheduleProjector
from app.services.academic_years import AcademicYearService
from app.services.login_check import DebouncedLoginCheck
from app.services.professors import ProfessorService


def get_loader(request: Request) -> RosterLoader:
    return request.app.state.loader


def get_reconciler(request: Request) -> AssignmentReconciler:
    return request.app.state.reconciler


def get_projector(request: Request) -> ScheduleProjector:
    return request.app.state.projector


def get_years(request: Request) -> AcademicYearService:
    return request.app.state.years


def get_professors(request: Request) -> ProfessorService:
    return request.app.state.professors


def get_login_check(request: Request) -> DebouncedLoginCheck:
    return request.app.state.login_check


def get_roster_session(request: Request, current_user: Any = Depends(require_manager)) -> RosterSession:
    return request.app.state.sessions.for_user(current_user.id)
