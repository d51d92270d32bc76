import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool
from firebase_admin import auth

from app.core.security import (
    build_current_user,
    create_access_token,
    get_current_active_user,
    load_user_document,
)
from app.schemas.auth import FirebaseLoginRequest, LoginResponse, UserResponse


router = APIRouter()


def _user_response(user: Any) -> UserResponse:
    return UserResponse(
        uid=user.id,
        email=user.email,
        display_name=user.display_name or None,
        role_libelle=user.role_libelle,
        role_key=user.role_key,
        is_manager=user.is_manager,
    )


@router.post("/login", response_model=LoginResponse)
async def login_with_firebase(payload: FirebaseLoginRequest, request: Request):
    """
    Échange un id_token Firebase contre un jeton d'accès local.
    Le compte doit avoir un document `users` (créé par la console d'administration).
    """
    try:
        decoded_token = await run_in_threadpool(auth.verify_id_token, payload.id_token)
    except (auth.InvalidIdTokenError, auth.ExpiredIdTokenError, auth.RevokedIdTokenError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid Firebase ID token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    uid = decoded_token["uid"]
    data = await load_user_document(request.app.state.store, uid)
    if not data:
        logging.warning("Login refused: no users document for uid=%s", uid)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Compte inconnu.")

    user = build_current_user(uid, decoded_token.get("email"), data)
    access_token = create_access_token(data={"sub": uid})
    logging.info("User %s logged in (role=%s)", uid, user.role_libelle)
    return LoginResponse(access_token=access_token, user=_user_response(user))


@router.get("/me", response_model=UserResponse)
async def read_users_me(current_user: Any = Depends(get_current_active_user)):
    """
    Get current user.
    """
    return _user_response(current_user)
