from create_firestore_seed import seed

from app.db.memory import InMemoryDocumentStore


async def test_seed_is_idempotent():
    store = InMemoryDocumentStore()
    await seed(store)
    await seed(store)

    labels = sorted(d["libelle"] for d in store.collections["roles"].values())
    assert labels == ["Admin", "Directeur des études", "Professeur"]
    year = store.collections["annees_scolaires"]["2024-2025"]
    assert year["active"] is True
