"""
Accès au magasin de documents.

`DocumentStore` est le contrat utilisé par le moteur de roster et les services :
lecture par id, requêtes d'égalité / d'appartenance, écriture (avec ou sans
fusion) et suppression. Les documents sont renvoyés sous forme de dict portant
leur identifiant sous la clé "_id".

`FirestoreDocumentStore` implémente ce contrat avec le client Firestore du SDK
Firebase Admin ; les appels bloquants passent par le threadpool de Starlette.
"""
from typing import Any, Dict, List, Optional, Sequence, Tuple

from fastapi.concurrency import run_in_threadpool
from google.api_core import exceptions as gexc

from app.core.errors import StoreError

Where = Sequence[Tuple[str, str, Any]]

SUPPORTED_OPS = ("==", "in")


class DocumentStore:
    """Contrat asynchrone du magasin de documents."""

    async def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    async def query(
        self,
        collection: str,
        where: Optional[Where] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        raise NotImplementedError

    async def add(self, collection: str, data: Dict[str, Any]) -> str:
        raise NotImplementedError

    async def set(self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = False) -> None:
        raise NotImplementedError

    async def delete(self, collection: str, doc_id: str) -> None:
        raise NotImplementedError

    async def count(self, collection: str) -> int:
        raise NotImplementedError

    def server_timestamp(self) -> Any:
        raise NotImplementedError


def _snapshot_to_dict(doc: Any) -> Dict[str, Any]:
    d = doc.to_dict() or {}
    d["_id"] = doc.id
    return d


class FirestoreDocumentStore(DocumentStore):
    def __init__(self, client: Any):
        self.db = client

    async def _run(self, operation: str, collection: str, fn, *args, **kwargs):
        try:
            return await run_in_threadpool(fn, *args, **kwargs)
        except (gexc.GoogleAPIError, ValueError) as e:
            raise StoreError(operation, collection, e) from e

    async def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        def _get():
            doc = self.db.collection(collection).document(str(doc_id)).get()
            return _snapshot_to_dict(doc) if doc.exists else None

        return await self._run("get", collection, _get)

    async def query(self, collection, where=None, order_by=None, descending=False, limit=None):
        from firebase_admin import firestore

        def _query():
            q = self.db.collection(collection)
            for field, op, value in where or ():
                if op not in SUPPORTED_OPS:
                    raise ValueError(f"Unsupported operator: {op}")
                q = q.where(field, op, value)
            if order_by:
                direction = firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
                q = q.order_by(order_by, direction=direction)
            if limit:
                q = q.limit(limit)
            return [_snapshot_to_dict(d) for d in q.stream()]

        return await self._run("query", collection, _query)

    async def add(self, collection: str, data: Dict[str, Any]) -> str:
        def _add():
            ref = self.db.collection(collection).document()
            ref.set(data)
            return ref.id

        return await self._run("add", collection, _add)

    async def set(self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = False) -> None:
        def _set():
            self.db.collection(collection).document(str(doc_id)).set(data, merge=merge)

        await self._run("set", collection, _set)

    async def delete(self, collection: str, doc_id: str) -> None:
        def _delete():
            self.db.collection(collection).document(str(doc_id)).delete()

        await self._run("delete", collection, _delete)

    async def count(self, collection: str) -> int:
        def _count():
            result = self.db.collection(collection).count().get()
            return int(result[0][0].value)

        return await self._run("count", collection, _count)

    def server_timestamp(self) -> Any:
        from firebase_admin import firestore

        return firestore.SERVER_TIMESTAMP
