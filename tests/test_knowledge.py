"""
Tests for the variety table and the phenology calendar.
"""
from datetime import date

import pytest

from agroclima_cafe.errors import UnknownVarietyError
from agroclima_cafe.knowledge.phenology import PhenologyCalendar
from agroclima_cafe.knowledge.varieties import VARIETY_PROFILES, VarietyKnowledgeBase


class TestVarietyKnowledgeBase:
    """Lookup of coffee cultivar parameters."""

    def test_known_varieties(self, kb):
        assert set(kb.keys()) == {"mundo_novo", "catuai", "bourbon", "acaia", "conilon"}

    def test_catuai_parameters(self, kb):
        catuai = kb.get("catuai")
        assert catuai.tipo == "arabica"
        assert catuai.ph_ideal == (5.0, 6.5)
        assert catuai.temperatura_ideal == (19.0, 24.0)
        assert catuai.ph_ideal_str == "5.0-6.5"

    def test_conilon_is_robusta(self, kb):
        assert kb.get("conilon").tipo == "robusta"

    def test_lookup_is_case_insensitive(self, kb):
        assert kb.get(" Catuai ").chave == "catuai"
        assert "BOURBON" in kb

    def test_unknown_variety_raises(self, kb):
        with pytest.raises(UnknownVarietyError) as exc:
            kb.get("geisha")
        assert exc.value.variety == "geisha"
        assert "geisha" in str(exc.value)

    def test_table_is_read_only(self):
        kb = VarietyKnowledgeBase()
        with pytest.raises(TypeError):
            kb._profiles["nova"] = VARIETY_PROFILES["catuai"]

    def test_custom_profiles(self):
        kb = VarietyKnowledgeBase({"catuai": VARIETY_PROFILES["catuai"]})
        assert "catuai" in kb
        assert "conilon" not in kb


class TestPhenologyCalendar:
    """Month -> phase resolution (first match wins)."""

    @pytest.mark.parametrize(
        "month,expected",
        [
            (1, "granacao"),
            (4, "granacao"),
            (5, "repouso"),
            (7, "repouso"),
            (8, "repouso"),
            (9, "brotacao"),
            (10, "floracao"),
            (12, "floracao"),
        ],
    )
    def test_phase_for_month(self, month, expected):
        assert PhenologyCalendar().phase_for_month(month) == expected

    def test_ripening_only_reachable_by_override(self):
        cal = PhenologyCalendar()
        assert all(cal.phase_for_month(m) != "maturacao" for m in range(1, 13))
        assert cal.resolve("maturacao", today=date(2024, 6, 1)) == "maturacao"

    def test_invalid_month(self):
        with pytest.raises(ValueError):
            PhenologyCalendar().phase_for_month(13)

    def test_resolve_uses_calendar_without_override(self):
        assert PhenologyCalendar().resolve(None, today=date(2024, 9, 10)) == "brotacao"

    def test_override_is_normalized(self):
        assert PhenologyCalendar().resolve(" Floracao ", today=date(2024, 6, 1)) == "floracao"

    def test_unknown_override_disables_phase_rules(self):
        assert PhenologyCalendar().resolve("dormencia", today=date(2024, 6, 1)) is None

    def test_phase_info(self):
        info = PhenologyCalendar().info("floracao")
        assert info.necessidade_hidrica == "alta"
        assert info.meses == (10, 11, 12)
        assert PhenologyCalendar().info("inexistente") is None
