"""
Application FastAPI principale
"""
import logging
import time
from contextlib import asynccontextmanager
from typing import Optional
from urllib.parse import urlparse

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1.api import api_router
from app.core.accounts import AccountProvisioner
from app.core.config import settings
from app.core.errors import AuthProvisioningError, FormValidationError, NotFoundError
from app.db.store import DocumentStore
from app.roster_engine import (
    AssignmentReconciler,
    RosterCache,
    RosterLoader,
    RosterSessionRegistry,
    ScheduleProjector,
)
from app.services.academic_years import AcademicYearService
from app.services.login_check import DebouncedLoginCheck
from app.services.professors import ProfessorService


def create_store() -> DocumentStore:
    """Magasin de documents choisi par DOCUMENT_STORE."""
    if settings.DOCUMENT_STORE == "memory":
        from app.db.memory import InMemoryDocumentStore

        logging.warning("Using the in-memory document store: data is lost on restart")
        return InMemoryDocumentStore()

    from app.core.firebase_connector import get_firestore_client
    from app.db.store import FirestoreDocumentStore

    return FirestoreDocumentStore(get_firestore_client())


def build_app_state(app: FastAPI, store: DocumentStore, provisioner=None, cache: Optional[RosterCache] = None) -> None:
    """Monte le moteur de roster et les services sur `app.state` (un cache par application)."""
    cache = cache if cache is not None else RosterCache()
    loader = RosterLoader(store, cache)
    app.state.store = store
    app.state.cache = cache
    app.state.loader = loader
    app.state.sessions = RosterSessionRegistry(loader)
    app.state.reconciler = AssignmentReconciler(store, cache)
    app.state.projector = ScheduleProjector(store)
    app.state.years = AcademicYearService(store)
    app.state.professors = ProfessorService(store, cache, provisioner or AccountProvisioner())
    app.state.login_check = DebouncedLoginCheck(store)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Gestion du cycle de vie de l'application"""
    logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.info(f"Démarrage de {settings.APP_NAME} v{settings.APP_VERSION} (debug={settings.DEBUG})")

    build_app_state(app, create_store())

    yield

    logging.info("Arrêt de l'application...")


# Créer l'application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Administration des professeurs par année académique",
    lifespan=lifespan,
    docs_url="/api/docs" if settings.DEBUG else None,
    redoc_url="/api/redoc" if settings.DEBUG else None,
)

# --- Configuration CORS ---
DEV_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://localhost:8000",
]


def _sanitize_origins(origins_list):
    clean = []
    for o in origins_list:
        if not o or o == "*":
            continue
        parsed = urlparse(o)
        if parsed.scheme in ("http", "https") and parsed.netloc:
            clean.append(o.rstrip("/"))
    return list(dict.fromkeys(clean))


origins_to_allow = DEV_ORIGINS if settings.DEBUG else _sanitize_origins(settings.BACKEND_CORS_ORIGINS)

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins_to_allow,
    allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:[0-9]+)?$",
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": exc.errors(), "body": exc.body},
    )


@app.exception_handler(FormValidationError)
async def form_validation_handler(request: Request, exc: FormValidationError):
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"ok": False, "errors": exc.errors},
    )


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"ok": False, "error": str(exc)})


@app.exception_handler(AuthProvisioningError)
async def provisioning_handler(request: Request, exc: AuthProvisioningError):
    return JSONResponse(status_code=status.HTTP_200_OK, content={"ok": False, "error": str(exc)})


# --- Inclusion des Routeurs API ---
app.include_router(api_router, prefix=settings.API_V1_STR)


@app.get("/health", tags=["Monitoring"])
async def health_check():
    """Vérifie que le service est en ligne."""
    return {"status": "healthy"}


@app.get("/")
async def root():
    """Route racine"""
    return {
        "message": f"Bienvenue sur {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/api/docs" if settings.DEBUG else "disabled",
        "api": settings.API_V1_STR,
    }

# Pour lancer le serveur en mode développement :
# uvicorn app.main:app --reload
