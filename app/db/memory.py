"""
Magasin de documents en mémoire (tests et exécutions locales, DOCUMENT_STORE=memory).

Reproduit la sémantique utile de Firestore : fusion de premier niveau pour
`set(..., merge=True)`, opérateurs `==` et `in`, tri sur un champ, horodatage
serveur résolu à l'écriture.
"""
import copy
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from app.db.store import DocumentStore, SUPPORTED_OPS


class _ServerTimestamp:
    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


class InMemoryDocumentStore(DocumentStore):
    def __init__(self, seed: Optional[Dict[str, Dict[str, Dict[str, Any]]]] = None):
        self.collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.calls: List[tuple] = []
        for coll, docs in (seed or {}).items():
            for doc_id, data in docs.items():
                self.collections.setdefault(coll, {})[doc_id] = copy.deepcopy(data)

    def _resolve(self, data: Dict[str, Any]) -> Dict[str, Any]:
        now = datetime.now(timezone.utc)
        return {k: (now if v is SERVER_TIMESTAMP else copy.deepcopy(v)) for k, v in data.items()}

    @staticmethod
    def _out(doc_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        d = copy.deepcopy(data)
        d["_id"] = doc_id
        return d

    async def get(self, collection, doc_id):
        self.calls.append(("get", collection, str(doc_id)))
        data = self.collections.get(collection, {}).get(str(doc_id))
        return None if data is None else self._out(str(doc_id), data)

    async def query(self, collection, where=None, order_by=None, descending=False, limit=None):
        self.calls.append(("query", collection, tuple(where or ())))
        rows = []
        for doc_id, data in self.collections.get(collection, {}).items():
            keep = True
            for field, op, value in where or ():
                if op not in SUPPORTED_OPS:
                    raise ValueError(f"Unsupported operator: {op}")
                if op == "==" and data.get(field) != value:
                    keep = False
                elif op == "in" and data.get(field) not in value:
                    keep = False
            if keep:
                rows.append(self._out(doc_id, data))
        if order_by:
            rows.sort(key=lambda r: str(r.get(order_by, "")), reverse=descending)
        if limit:
            rows = rows[:limit]
        return rows

    async def add(self, collection, data):
        doc_id = uuid.uuid4().hex[:20]
        self.calls.append(("add", collection, doc_id))
        self.collections.setdefault(collection, {})[doc_id] = self._resolve(data)
        return doc_id

    async def set(self, collection, doc_id, data, merge=False):
        self.calls.append(("set", collection, str(doc_id)))
        docs = self.collections.setdefault(collection, {})
        resolved = self._resolve(data)
        if merge and str(doc_id) in docs:
            docs[str(doc_id)].update(resolved)
        else:
            docs[str(doc_id)] = resolved

    async def delete(self, collection, doc_id):
        self.calls.append(("delete", collection, str(doc_id)))
        self.collections.get(collection, {}).pop(str(doc_id), None)

    async def count(self, collection):
        self.calls.append(("count", collection, None))
        return len(self.collections.get(collection, {}))

    def server_timestamp(self):
        return SERVER_TIMESTAMP
