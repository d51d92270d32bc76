"""
Tests des affectations classe / matières.
"""
import pytest
from conftest import PREV_YEAR, YEAR

from app.core.errors import FormValidationError, StoreError
from app.roster_engine import AssignmentReconciler, Draft, DraftEntry, DraftList
from app.roster_engine.membership import CLEARED_YEAR_VALUE
from app.roster_engine.reference import load_scope

KEY_YEAR = "professeurs:" + YEAR
KEY_PREV = "professeurs:" + PREV_YEAR


@pytest.fixture
def reconciler(store, cache):
    return AssignmentReconciler(store, cache)


def entry(classe_id, matieres, filiere_id="F1", section="Informatique"):
    return DraftEntry(section=section, filiere_id=filiere_id, classe_id=classe_id, matieres_ids=matieres)


class TestDraftList:
    def test_requires_every_field(self):
        drafts = DraftList()
        assert drafts.add(Draft()) == "Sélectionnez une section."
        assert drafts.add(Draft(section="Autre")) == "Sélectionnez une section."
        assert drafts.add(Draft(section="Gestion")) == "Sélectionnez une filière."
        assert drafts.add(Draft(section="Gestion", filiere_id="F2")) == "Sélectionnez une classe."
        assert drafts.add(Draft(section="Gestion", filiere_id="F2", classe_id="C2")) == "Cochez au moins une matière."
        assert drafts.entries == []

    def test_one_entry_per_classe(self):
        drafts = DraftList()
        ok = Draft(section="Informatique", filiere_id="F1", classe_id="C1", matieres_ids=["M1"])
        assert drafts.add(ok) is None
        assert drafts.add(ok.model_copy(update={"matieres_ids": ["M2"]})) == (
            "Cette classe est déjà dans la liste d’affectations."
        )
        drafts.remove("C1")
        assert drafts.add(ok) is None
        assert len(drafts.entries) == 1

    async def test_scope_checks(self, store):
        scope = await load_scope(store, YEAR)
        drafts = DraftList(scope=scope)
        assert drafts.add(Draft(section="Informatique", filiere_id="F3", classe_id="C9", matieres_ids=["M9"])) == (
            "Filière inconnue pour cette année."
        )
        assert drafts.add(Draft(section="Gestion", filiere_id="F1", classe_id="C1", matieres_ids=["M1"])) == (
            "Cette filière n’appartient pas à la section choisie."
        )
        assert drafts.add(Draft(section="Gestion", filiere_id="F2", classe_id="C1", matieres_ids=["M1"])) == (
            "Classe inconnue pour cette filière."
        )
        assert drafts.add(Draft(section="Informatique", filiere_id="F1", classe_id="C1", matieres_ids=["M4"])) == (
            "Matière inconnue pour cette classe."
        )
        assert drafts.entries == []


class TestSaveAssignment:
    async def test_snapshot_and_dedupe(self, store, reconciler):
        entries = [entry("C1", ["M1", "M2"]), entry("C2", ["M4"], "F2", "Gestion"), entry("C1", ["M3"])]
        classes = await reconciler.save_assignment(YEAR, "P2", entries)

        doc = store.collections["affectations_professeurs"][f"{YEAR}__P2"]
        assert doc["annee_id"] == YEAR
        assert doc["prof_doc_id"] == "P2"
        assert [c["classe_id"] for c in doc["classes"]] == ["C1", "C2"]
        c1 = doc["classes"][0]
        assert c1["matieres_ids"] == ["M3"]
        assert c1["matieres_libelles"] == ["Bases de données"]
        assert c1["classe_libelle"] == "L1 GL"
        assert c1["filiere_libelle"] == "Génie logiciel"
        assert [c.classe_id for c in classes] == ["C1", "C2"]

    async def test_created_at_only_on_creation(self, store, reconciler):
        await reconciler.save_assignment(YEAR, "P2", [entry("C1", ["M1"])])
        doc = store.collections["affectations_professeurs"][f"{YEAR}__P2"]
        created, first_update = doc["createdAt"], doc["updatedAt"]

        await reconciler.save_assignment(YEAR, "P2", [entry("C1", ["M2"])])
        doc = store.collections["affectations_professeurs"][f"{YEAR}__P2"]
        assert doc["createdAt"] == created
        assert doc["updatedAt"] >= first_update
        assert doc["classes"][0]["matieres_ids"] == ["M2"]

    async def test_invalidates_only_that_year(self, cache, reconciler):
        cache.set(KEY_YEAR, [])
        cache.set(KEY_PREV, [])
        await reconciler.save_assignment(YEAR, "P2", [entry("C1", ["M1"])])
        assert KEY_YEAR not in cache
        assert KEY_PREV in cache

    async def test_empty_list_rejected(self, store, cache, reconciler):
        cache.set(KEY_YEAR, [])
        with pytest.raises(FormValidationError):
            await reconciler.save_assignment(YEAR, "P2", [])
        assert KEY_YEAR in cache
        assert f"{YEAR}__P2" not in store.collections["affectations_professeurs"]

    async def test_invalid_entry_rejected(self, store, cache, reconciler):
        cache.set(KEY_YEAR, [])
        bad = DraftEntry(section="Autre", filiere_id="F1", classe_id="NOPE", matieres_ids=[])
        with pytest.raises(FormValidationError) as exc:
            await reconciler.save_assignment(YEAR, "P2", [bad])
        assert "classes" in exc.value.errors
        assert f"{YEAR}__P2" not in store.collections["affectations_professeurs"]
        assert KEY_YEAR in cache

    async def test_entry_from_another_year_rejected(self, store, reconciler):
        with pytest.raises(FormValidationError):
            await reconciler.save_assignment(YEAR, "P2", [entry("C9", ["M9"], "F3")])
        assert f"{YEAR}__P2" not in store.collections["affectations_professeurs"]

    async def test_write_failure_keeps_cache(self, store, cache, reconciler):
        cache.set(KEY_YEAR, [])
        store.fail_writes = True
        with pytest.raises(StoreError):
            await reconciler.save_assignment(YEAR, "P2", [entry("C1", ["M1"])])
        assert KEY_YEAR in cache


class TestLoadAssignment:
    async def test_stale_references_dropped(self, store, reconciler):
        store.collections["affectations_professeurs"][f"{YEAR}__P2"] = {
            "annee_id": YEAR,
            "prof_doc_id": "P2",
            "classes": [
                {"filiere_id": "F1", "classe_id": "C1", "matieres_ids": ["M1", "M9", "M4"]},
                {"filiere_id": "F3", "classe_id": "C9", "matieres_ids": ["M9"]},
                {"filiere_id": "F1", "classe_id": "DELETED", "matieres_ids": ["M1"]},
                {"filiere_id": "F3", "classe_id": "C2", "matieres_ids": ["M4"]},
            ],
        }
        entries = await reconciler.load_assignment(YEAR, "P2")
        assert entries == [entry("C1", ["M1"])]

    async def test_missing_record(self, reconciler):
        assert await reconciler.load_assignment(YEAR, "P3") == []


class TestTransferAndTake:
    async def test_transfer_creates_empty_record(self, store, cache, reconciler):
        cache.set(KEY_PREV, [])
        await reconciler.transfer_to_year("P1", PREV_YEAR)
        doc = store.collections["affectations_professeurs"][f"{PREV_YEAR}__P1"]
        assert doc["classes"] == []
        assert "createdAt" in doc
        assert KEY_PREV not in cache

    async def test_transfer_keeps_existing_destination_classes(self, store, reconciler):
        await reconciler.save_assignment(PREV_YEAR, "P1", [entry("C9", ["M9"], "F3")])
        await reconciler.transfer_to_year("P1", PREV_YEAR)
        doc = store.collections["affectations_professeurs"][f"{PREV_YEAR}__P1"]
        assert [c["classe_id"] for c in doc["classes"]] == ["C9"]

    async def test_transfer_with_copy_from_source(self, store, reconciler):
        await reconciler.save_assignment(YEAR, "P2", [entry("C1", ["M1"])])
        await reconciler.transfer_to_year("P2", PREV_YEAR, source_year_id=YEAR)
        doc = store.collections["affectations_professeurs"][f"{PREV_YEAR}__P2"]
        assert [c["classe_id"] for c in doc["classes"]] == ["C1"]

    async def test_take_preserves_existing_classes(self, store, cache, reconciler):
        await reconciler.save_assignment(YEAR, "P2", [entry("C1", ["M1"])])
        cache.set(KEY_YEAR, [])
        await reconciler.take_for_year(["P2", "P3", "P3"], YEAR)
        docs = store.collections["affectations_professeurs"]
        assert [c["classe_id"] for c in docs[f"{YEAR}__P2"]["classes"]] == ["C1"]
        assert docs[f"{YEAR}__P3"]["classes"] == []
        assert KEY_YEAR not in cache

    async def test_take_requires_a_selection(self, reconciler):
        with pytest.raises(FormValidationError):
            await reconciler.take_for_year([], YEAR)

    async def test_taken_professor_joins_roster(self, loader, reconciler):
        before = await loader.load_for_year(YEAR, YEAR)
        assert "P3" not in [r.doc_id for r in before]
        await reconciler.take_for_year(["P3"], YEAR)
        after = await loader.load_for_year(YEAR, YEAR)
        assert "P3" in [r.doc_id for r in after]


class TestRemoveFromYear:
    async def test_clears_matching_metadata(self, store, cache, loader, reconciler):
        await loader.load_for_year(YEAR, YEAR)
        cleared = await reconciler.remove_from_year("P1", YEAR, YEAR)

        assert cleared
        user = store.collections["users"]["P1"]
        assert user["academic_year_id"] == CLEARED_YEAR_VALUE
        assert user["academic_year_label"] == CLEARED_YEAR_VALUE
        assert "updatedAt" in user
        assert f"{YEAR}__P1" not in store.collections["affectations_professeurs"]

        rows = await loader.load_for_year(YEAR, YEAR)
        assert "P1" not in [r.doc_id for r in rows]

    async def test_metadata_of_other_year_left_untouched(self, store, reconciler):
        await reconciler.take_for_year(["P3"], YEAR)
        cleared = await reconciler.remove_from_year("P3", YEAR, YEAR)
        assert not cleared
        assert store.collections["users"]["P3"]["academic_year_id"] == PREV_YEAR
        assert f"{YEAR}__P3" not in store.collections["affectations_professeurs"]

    async def test_metadata_failure_still_invalidates(self, store, cache, reconciler):
        cache.set(KEY_YEAR, [])

        async def failing_set(collection, doc_id, data, merge=False):
            raise StoreError("set", collection, RuntimeError("unavailable"))

        store.set = failing_set
        with pytest.raises(StoreError):
            await reconciler.remove_from_year("P1", YEAR, YEAR)
        assert f"{YEAR}__P1" not in store.collections["affectations_professeurs"]
        assert KEY_YEAR not in cache

    async def test_label_read_from_academic_year(self, store, reconciler):
        store.collections["users"]["P5"]["academic_year_id"] = "autre"
        cleared = await reconciler.remove_from_year("P5", PREV_YEAR, "")
        assert cleared
        assert store.collections["users"]["P5"]["academic_year_label"] == CLEARED_YEAR_VALUE

    async def test_delete_failure_keeps_cache(self, store, cache, reconciler):
        cache.set(KEY_YEAR, [])
        store.fail_writes = True
        with pytest.raises(StoreError):
            await reconciler.remove_from_year("P1", YEAR, YEAR)
        assert KEY_YEAR in cache
        assert store.collections["users"]["P1"]["academic_year_id"] == YEAR
