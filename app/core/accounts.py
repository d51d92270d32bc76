"""
Création des comptes d'authentification des professeurs (Firebase Auth).

Le SDK Admin crée le compte sans ouvrir de session : la session de
l'administrateur qui saisit le formulaire n'est jamais remplacée.
"""
import logging
from typing import Optional

from fastapi.concurrency import run_in_threadpool
from firebase_admin import auth

from app.core.errors import AuthProvisioningError, FormValidationError

WEAK_PASSWORD_HINTS = ("WEAK_PASSWORD", "password must be", "at least 6 characters")


class AccountProvisioner:
    async def create_account(self, email: str, password: str, display_name: Optional[str] = None) -> str:
        """Crée le compte et renvoie son uid."""

        def _create():
            return auth.create_user(email=email, password=password, display_name=display_name or None)

        try:
            record = await run_in_threadpool(_create)
        except auth.EmailAlreadyExistsError:
            raise FormValidationError({"email": "Email déjà utilisé."})
        except ValueError as e:
            # le SDK valide lui-même le mot de passe (>= 6 caractères)
            if "password" in str(e).lower():
                raise FormValidationError({"password": "Mot de passe trop faible."})
            raise FormValidationError({"email": "Adresse email invalide."})
        except Exception as e:
            if any(h.lower() in str(e).lower() for h in WEAK_PASSWORD_HINTS):
                raise FormValidationError({"password": "Mot de passe trop faible."})
            logging.exception("Firebase create_user failed for %s", email)
            raise AuthProvisioningError(
                "Création du compte échouée. Vérifiez l’email/mot de passe et réessayez."
            ) from e
        logging.info("Created auth account uid=%s for %s", record.uid, email)
        return record.uid
