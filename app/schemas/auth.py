"""
Schémas d'authentification
"""
from typing import Optional
from pydantic import BaseModel, EmailStr


class Token(BaseModel):
    """Token d'accès"""
    access_token: str
    token_type: str = "bearer"


class FirebaseLoginRequest(BaseModel):
    id_token: str


class UserResponse(BaseModel):
    """Réponse utilisateur"""
    uid: str
    email: Optional[EmailStr] = None
    display_name: Optional[str] = None
    role_libelle: Optional[str] = None
    role_key: Optional[str] = None
    is_manager: bool = False


class LoginResponse(Token):
    user: UserResponse
