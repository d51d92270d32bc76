"""
Tests du service des années académiques.
"""
from datetime import date

import pytest
from conftest import PREV_YEAR, YEAR

from app.core.errors import FormValidationError, NotFoundError
from app.db.memory import InMemoryDocumentStore
from app.services.academic_years import AcademicYearService, default_year, year_to_dict


@pytest.fixture
def years(store):
    return AcademicYearService(store)


class TestListYears:
    async def test_sorted_by_label_descending(self, years):
        listed = await years.list_years()
        assert [y.id for y in listed] == [YEAR, PREV_YEAR]

    async def test_default_entry_when_empty(self):
        listed = await AcademicYearService(InMemoryDocumentStore()).list_years()
        assert [(y.id, y.label) for y in listed] == [("2024-2025", "2024-2025")]

    async def test_default_prefers_active(self, years):
        listed = await years.list_years()
        assert default_year(listed).id == YEAR
        for y in listed:
            y.active = False
        assert default_year(listed).id == YEAR
        assert default_year([]) is None


class TestCreateYear:
    @pytest.mark.parametrize(
        "label, message",
        [
            ("  ", "Saisissez un libellé (ex: 2025-2026)."),
            ("2026/2027", "Format invalide. Utilisez YYYY-YYYY (ex: 2025-2026)."),
            ("2026-2028", "L'année de droite doit être égale à l'année de gauche + 1."),
            (YEAR, "Cette année académique existe déjà."),
        ],
    )
    async def test_label_errors(self, years, label, message):
        with pytest.raises(FormValidationError) as exc:
            await years.create_year(label, date(2026, 10, 1), date(2027, 7, 31))
        assert exc.value.errors["label"] == message

    async def test_dates_required(self, years):
        with pytest.raises(FormValidationError) as exc:
            await years.create_year("2026-2027", None, date(2027, 7, 31))
        assert exc.value.errors == {"dates": "Renseignez début et fin d'année."}

    async def test_end_before_start(self, years):
        with pytest.raises(FormValidationError) as exc:
            await years.create_year("2026-2027", date(2027, 7, 31), date(2026, 10, 1))
        assert "date_fin" in exc.value.errors

    async def test_created_with_label_as_id(self, store, years):
        year = await years.create_year("<2026-2027>", date(2026, 10, 1), date(2027, 7, 31), active=True)
        assert year.id == "2026-2027"
        doc = store.collections["annees_scolaires"]["2026-2027"]
        assert doc["label"] == "2026-2027"
        assert doc["timezone"] == "Africa/Dakar"
        assert doc["active"] is True
        assert year_to_dict(year)["date_debut"] == "2026-10-01"


class TestUpdateYear:
    async def test_patch(self, store, years):
        year = await years.update_year(PREV_YEAR, active=True, date_fin=date(2025, 7, 31))
        assert year.active
        assert store.collections["annees_scolaires"][PREV_YEAR]["active"] is True
        assert year_to_dict(year)["date_fin"] == "2025-07-31"

    async def test_empty_patch_is_noop(self, store, years):
        store.calls.clear()
        await years.update_year(PREV_YEAR)
        assert not any(c[0] == "set" for c in store.calls)

    async def test_unknown_year(self, years):
        with pytest.raises(NotFoundError):
            await years.update_year("1999-2000", active=True)
