"""
Exceptions métier partagées par le moteur de roster, les services et l'API.
"""
from typing import Dict, Optional


class StoreError(Exception):
    """Échec d'une opération sur le magasin de documents (réseau, droits, ...)."""

    def __init__(self, operation: str, collection: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.collection = collection
        self.cause = cause
        super().__init__(f"{operation} on '{collection}' failed: {cause}")


class NotFoundError(Exception):
    def __init__(self, what: str, ident: str):
        self.what = what
        self.ident = ident
        super().__init__(f"{what} '{ident}' introuvable")


class FormValidationError(Exception):
    """Erreurs de saisie, par champ. Rendues en 422, jamais en erreur serveur."""

    def __init__(self, errors: Dict[str, str]):
        self.errors = dict(errors)
        super().__init__("; ".join(f"{k}: {v}" for k, v in self.errors.items()))


class UniquenessConflict(FormValidationError):
    pass


class AuthProvisioningError(Exception):
    pass
