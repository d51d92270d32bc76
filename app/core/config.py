"""
Configuration centrale de l'application
"""
from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
import os


class Settings(BaseSettings):
    """Configuration de l'application"""

    # Application
    APP_NAME: str = "Gestion des Professeurs"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    API_V1_STR: str = "/api/v1"

    # Security
    SECRET_KEY: str = "votre_cle_secrete_a_changer_en_production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    # Libellés de rôle (normalisés) autorisés à gérer les professeurs
    MANAGER_ROLE_KEYWORDS: List[str] = ["admin", "directeur"]

    # Firebase / stockage
    FIREBASE_CREDENTIALS_JSON: Optional[str] = None
    DOCUMENT_STORE: str = "firestore"  # firestore | memory
    FIRESTORE_IN_LIMIT: int = 10

    # Règles métier
    ROLE_PROF_KEY: str = "prof"
    DEFAULT_TIMEZONE: str = "Africa/Dakar"
    DEFAULT_ACADEMIC_YEAR: str = "2024-2025"
    LOGIN_CHECK_DELAY_MS: int = 400
    PHONE_PREFIX: str = "+221"
    PER_PAGE: int = 10

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = []

    @field_validator("BACKEND_CORS_ORIGINS", "MANAGER_ROLE_KEYWORDS", mode="before")
    @classmethod
    def assemble_list(cls, v: str | List[str]) -> List[str] | str:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    @field_validator("DOCUMENT_STORE")
    @classmethod
    def check_store(cls, v: str) -> str:
        v = (v or "").strip().lower()
        if v not in ("firestore", "memory"):
            raise ValueError(f"DOCUMENT_STORE inconnu: {v}")
        return v

    # Logging
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(__file__))), ".env"),
        case_sensitive=True,
        extra="ignore",  # Ignore les variables non déclarées dans le .env
    )


# Instance unique pour l'application
settings = Settings()
