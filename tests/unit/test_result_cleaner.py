# ============================================================================
# tests/unit/test_result_cleaner.py
# ============================================================================
"""
Tests for result cleaning and deduplication
"""

import pytest

from medireader.schemas.devices import ExtractionResultItem
from medireader.services.label_normalizer import LabelNormalizer
from medireader.services.result_cleaner import clean


def item(label, value="1", confidence=0.9):
    return ExtractionResultItem(label=label, value=value, confidence=confidence)


class TestDeduplication:
    """Test one output per canonical field"""

    def test_canonical_beats_earlier_synonym(self, fresenius_profile):
        """Test the exact canonical label wins over a synonym seen first"""
        raw = [item("Blood Flow", "10"), item("EFF. BLOOD FLOW", "20")]

        cleaned = clean(raw, fresenius_profile.normalizer)

        assert len(cleaned) == 1
        assert cleaned[0].label == "EFF. BLOOD FLOW"
        assert cleaned[0].value == "20"

    def test_first_synonym_wins_without_canonical(self, fresenius_profile):
        """Test the first synonym match is kept when no exact label exists"""
        raw = [item("BLOOD FLOW", "300"), item("Blood Flow", "310")]

        cleaned = clean(raw, fresenius_profile.normalizer)

        assert [(c.label, c.value) for c in cleaned] == [("EFF. BLOOD FLOW", "300")]

    def test_synonym_label_is_rewritten(self, fresenius_profile):
        """Test output carries the canonical label, not the raw one"""
        cleaned = clean([item("UF Volume", "1200")], fresenius_profile.normalizer)
        assert cleaned[0].label == "UF VOLUME"

    def test_input_not_mutated(self, fresenius_profile):
        """Test cleaning returns copies"""
        raw = [item("UF Volume", "1200")]
        clean(raw, fresenius_profile.normalizer)
        assert raw[0].label == "UF Volume"


class TestOrdering:
    """Test output follows the device's priority list"""

    def test_output_follows_supported_order(self, fresenius_profile):
        """Test input order does not matter"""
        raw = [item("TMP"), item("CONDUCTIVITY"), item("Kt/V"), item("UF VOLUME")]

        labels = [c.label for c in clean(raw, fresenius_profile.normalizer)]

        supported = fresenius_profile.model.supported_data_points
        assert labels == [f for f in supported if f in {"TMP", "CONDUCTIVITY", "Kt/V", "UF VOLUME"}]

    def test_order_with_small_device(self):
        """Test ordering against a hand-built normalizer"""
        normalizer = LabelNormalizer("tiny", ["A", "B", "C"], {"C": ["c"]})
        cleaned = clean([item("c"), item("A"), item("B")], normalizer)
        assert [c.label for c in cleaned] == ["A", "B", "C"]


class TestDiscards:
    """Test unknown and missing fields"""

    def test_unknown_labels_dropped(self, fresenius_profile):
        """Test labels matching nothing never reach the output"""
        cleaned = clean([item("Heart Rate"), item("TMP")], fresenius_profile.normalizer)
        assert [c.label for c in cleaned] == ["TMP"]

    def test_missing_fields_absent(self, fresenius_profile):
        """Test unreported fields are omitted rather than nulled"""
        cleaned = clean([item("TMP")], fresenius_profile.normalizer)
        assert len(cleaned) == 1
        assert len(cleaned) < len(fresenius_profile.model.supported_data_points)

    @pytest.mark.parametrize("raw", [[], [item("nothing"), item("matches")]])
    def test_empty_result(self, fresenius_profile, raw):
        """Test nothing in, nothing out"""
        assert clean(raw, fresenius_profile.normalizer) == []
