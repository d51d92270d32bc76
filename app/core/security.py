"""
Sécurité : jetons d'accès, utilisateur courant, permissions
"""
import logging
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from firebase_admin import auth
from jose import JWTError, jwt as jose_jwt

from app.core.config import settings
from app.db.store import DocumentStore
from app.models.firestore_models import USERS
from app.services.validation import normalize_label


# OAuth2
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/login")


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Créer un token JWT"""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jose_jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[str]:
    """uid contenu dans un JWT local, ou None s'il est invalide."""
    try:
        payload = jose_jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        logging.debug(f"JWT decode error: {e}")
        return None
    return payload.get("sub")


def is_manager_role(role_libelle: Optional[str]) -> bool:
    label = normalize_label(role_libelle or "")
    return any(k in label for k in settings.MANAGER_ROLE_KEYWORDS)


async def load_user_document(store: DocumentStore, uid: str) -> Dict[str, Any]:
    """Document `users` du compte : id == uid, sinon champ auth_uid / firebase_uid."""
    doc = await store.get(USERS, uid)
    if doc is not None:
        return doc
    for field in ("auth_uid", "firebase_uid"):
        docs = await store.query(USERS, where=[(field, "==", uid)], limit=1)
        if docs:
            return docs[0]
    return {}


def build_current_user(uid: str, email: Optional[str], data: Dict[str, Any]) -> SimpleNamespace:
    role_libelle = data.get("role_libelle") or data.get("role")
    return SimpleNamespace(
        id=str(uid),
        email=email or data.get("email"),
        display_name=data.get("display_name") or f"{data.get('prenom') or ''} {data.get('nom') or ''}".strip(),
        role_libelle=role_libelle,
        role_key=data.get("role_key"),
        is_active=not data.get("disabled", False),
        is_manager=is_manager_role(role_libelle),
        raw=data,
    )


async def get_current_user(request: Request, token: str = Depends(oauth2_scheme)) -> Any:
    """Obtenir l'utilisateur courant depuis le token. Retourne un objet léger."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    uid = decode_access_token(token)
    email = None
    if uid is None:
        # Le client a pu envoyer directement un id_token Firebase
        try:
            claims = auth.verify_id_token(token)
        except Exception as e:
            logging.debug(f"verify_id_token fallback failed: {e}")
            raise credentials_exception
        uid = claims.get("uid") or claims.get("user_id") or claims.get("sub")
        email = claims.get("email")
    if not uid:
        raise credentials_exception

    data = await load_user_document(request.app.state.store, uid)
    if not data:
        raise credentials_exception
    return build_current_user(uid, email, data)


async def get_current_active_user(current_user: Any = Depends(get_current_user)) -> Any:
    """Obtenir l'utilisateur actif"""
    if not getattr(current_user, "is_active", False):
        raise HTTPException(status_code=400, detail="Inactive user")
    return current_user


async def require_manager(current_user: Any = Depends(get_current_active_user)) -> Any:
    """Réservé aux rôles de direction / administration."""
    if not getattr(current_user, "is_manager", False):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not enough permissions")
    return current_user
