"""
Script d'initialisation Firestore : rôles et année académique par défaut
utilisés par la console de gestion des professeurs.
Usage: python create_firestore_seed.py
"""
import asyncio
import logging
from datetime import date

from app.core.config import settings
from app.core.errors import FormValidationError
from app.db.store import DocumentStore
from app.models.firestore_models import ROLES
from app.services.academic_years import AcademicYearService

ROLES_SEED = ["Professeur", "Directeur des études", "Admin"]


async def seed(store: DocumentStore) -> None:
    existing = {d.get("libelle"): d["_id"] for d in await store.query(ROLES)}
    for libelle in ROLES_SEED:
        if libelle in existing:
            logging.info(f"Role '{libelle}' exists (id={existing[libelle]})")
        else:
            role_id = await store.add(ROLES, {"libelle": libelle})
            logging.info(f"Created role '{libelle}' (id={role_id})")

    label = settings.DEFAULT_ACADEMIC_YEAR
    left, right = (int(p) for p in label.split("-"))
    try:
        await AcademicYearService(store).create_year(label, date(left, 8, 1), date(right, 7, 31), active=True)
        logging.info(f"Created academic year {label}")
    except FormValidationError as e:
        logging.info(f"Academic year {label} not created: {e}")


if __name__ == "__main__":
    from app.core.firebase_connector import get_firestore_client
    from app.db.store import FirestoreDocumentStore

    logging.basicConfig(level=settings.LOG_LEVEL)
    asyncio.run(seed(FirestoreDocumentStore(get_firestore_client())))
