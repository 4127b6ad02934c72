# ============================================================================
# tests/unit/test_label_normalizer.py
# ============================================================================
"""
Tests for label normalization and synonym table validation
"""

import pytest

from medireader.errors import DeviceConfigurationError, ErrorCode
from medireader.services.label_normalizer import LabelNormalizer


@pytest.fixture
def normalizer():
    return LabelNormalizer(
        "test-device",
        ["EFF. BLOOD FLOW", "QB(ml/min)", "TMP"],
        {
            "EFF. BLOOD FLOW": ["Blood Flow", "BLOOD FLOW"],
            "QB(ml/min)": ["QB"],
        },
    )


class TestNormalize:
    """Test raw label -> canonical name mapping"""

    def test_canonical_label_unchanged(self, normalizer):
        """Test canonical names map to themselves"""
        assert normalizer.normalize("TMP") == "TMP"

    def test_synonym_maps_to_canonical(self, normalizer):
        """Test a listed synonym maps to its field"""
        assert normalizer.normalize("Blood Flow") == "EFF. BLOOD FLOW"
        assert normalizer.normalize("QB") == "QB(ml/min)"

    def test_unknown_label_passes_through(self, normalizer):
        """Test labels nobody claims come back unchanged"""
        assert normalizer.normalize("Heart Rate") == "Heart Rate"

    def test_matching_is_case_sensitive(self, normalizer):
        """Test there is no case folding"""
        assert normalizer.normalize("tmp") == "tmp"
        assert normalizer.normalize("blood flow") == "blood flow"

    def test_is_variant(self, normalizer):
        """Test synonym membership per field"""
        assert normalizer.is_variant("BLOOD FLOW", "EFF. BLOOD FLOW")
        assert not normalizer.is_variant("BLOOD FLOW", "QB(ml/min)")
        assert not normalizer.is_variant("TMP", "TMP")

    def test_matches_includes_canonical(self, normalizer):
        """Test matches() accepts the canonical name as well"""
        assert normalizer.matches("TMP", "TMP")
        assert normalizer.matches("QB", "QB(ml/min)")


class TestConfigurationErrors:
    """Test synonym tables are rejected when ambiguous"""

    def test_duplicate_fields_collapse(self):
        """Test repeated canonical names keep their first slot"""
        normalizer = LabelNormalizer("dup", ["A", "B", "A"])
        assert normalizer.supported == ("A", "B")

    def test_empty_supported_list(self):
        """Test a device with no fields is rejected"""
        with pytest.raises(DeviceConfigurationError) as exc:
            LabelNormalizer("empty", [])
        assert exc.value.code == ErrorCode.INVALID_CONFIGURATION

    def test_synonym_for_unsupported_field(self):
        """Test synonyms keyed by an unknown field are rejected"""
        with pytest.raises(DeviceConfigurationError):
            LabelNormalizer("bad", ["A"], {"B": ["b"]})

    def test_synonym_shadowing_canonical(self):
        """Test a synonym may not be another field's canonical name"""
        with pytest.raises(DeviceConfigurationError):
            LabelNormalizer("bad", ["A", "B"], {"A": ["B"]})

    def test_synonym_claimed_twice(self):
        """Test one spelling may not belong to two fields"""
        with pytest.raises(DeviceConfigurationError) as exc:
            LabelNormalizer("bad", ["A", "B"], {"A": ["x"], "B": ["x"]})
        assert "claimed by both" in str(exc.value.details)

    def test_self_synonym_ignored(self):
        """Test listing a field as its own synonym is harmless"""
        normalizer = LabelNormalizer("ok", ["A"], {"A": ["A", "a"]})
        assert normalizer.synonyms["A"] == frozenset({"a"})

    def test_tables_are_read_only(self, normalizer):
        """Test the synonym table cannot be mutated after construction"""
        with pytest.raises(TypeError):
            normalizer.synonyms["TMP"] = frozenset({"x"})
