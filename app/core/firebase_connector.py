"""
Initialisation du SDK Firebase Admin.

Ordre de résolution des credentials :
- `settings.FIREBASE_CREDENTIALS_JSON` : contenu JSON (commence par '{') ou chemin
  vers le fichier du compte de service ;
- sinon la variable d'environnement GOOGLE_APPLICATION_CREDENTIALS (chemin).

Un certificat dont le champ 'type' n'est pas 'service_account' est refusé avec
un message explicite, pour que les logs de déploiement soient exploitables.
"""
import os
import json
import logging
import firebase_admin
from firebase_admin import credentials, firestore
from app.core.config import settings


def _certificate_from_json(val: str) -> credentials.Certificate:
    try:
        cred_dict = json.loads(val)
    except ValueError as e:
        raise ValueError(f"FIREBASE_CREDENTIALS_JSON does not contain valid JSON: {e}")
    if cred_dict.get("type") != "service_account":
        raise ValueError("Invalid service account certificate: 'type' field must be 'service_account'.")
    return credentials.Certificate(cred_dict)


def _resolve_certificate() -> credentials.Certificate:
    raw = settings.FIREBASE_CREDENTIALS_JSON
    if raw:
        if raw.strip().startswith("{"):
            return _certificate_from_json(raw)
        path = os.path.expanduser(raw)
        if os.path.isfile(path):
            return credentials.Certificate(path)
        raise ValueError(f"FIREBASE_CREDENTIALS_JSON value is neither a valid JSON nor a path to a file: {path}")

    gac = os.getenv("GOOGLE_APPLICATION_CREDENTIALS")
    if gac:
        path = os.path.expanduser(gac)
        if os.path.isfile(path):
            return credentials.Certificate(path)
        raise ValueError(f"GOOGLE_APPLICATION_CREDENTIALS is set but the file was not found: {path}")

    raise ValueError(
        "Firebase credentials not provided. Set FIREBASE_CREDENTIALS_JSON (content or path) "
        "or GOOGLE_APPLICATION_CREDENTIALS (path)."
    )


def initialize_firebase() -> None:
    """Initialise l'app Firebase par défaut (idempotent)."""
    if firebase_admin._apps:
        logging.debug("Firebase already initialized")
        return
    try:
        logging.info("Initializing Firebase Admin SDK...")
        firebase_admin.initialize_app(_resolve_certificate())
        logging.info("Firebase Admin SDK initialized successfully.")
    except Exception as e:
        logging.error(f"Fatal error: Failed to initialize Firebase Admin SDK: {e}")
        raise


def get_firestore_client():
    """Client Firestore de l'app par défaut (initialise Firebase si besoin)."""
    initialize_firebase()
    return firestore.client()
