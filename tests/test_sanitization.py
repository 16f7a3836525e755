"""
Tests for free-text sanitization

Notes, seal numbers and journey fields are stored as plain text.
"""

import pytest

from app.utils.sanitization import sanitize_string, sanitize_string_array, strip_dangerous_tags


class TestSanitizeString:
    def test_script_body_is_removed_with_tags(self):
        assert sanitize_string("  <script>alert(1)</script>Hello <b>World</b> ") == "Hello World"

    def test_encoded_markup_does_not_survive(self):
        assert sanitize_string("&lt;script&gt;alert(1)&lt;/script&gt;Safe") == "Safe"

    def test_entities_are_decoded(self):
        assert sanitize_string("Fish &amp; Chips") == "Fish & Chips"

    def test_invisible_characters_removed(self):
        assert sanitize_string("SEAL\u200b-001\ufeff") == "SEAL-001"

    def test_fullwidth_is_normalized(self):
        assert sanitize_string("\uff21\uff22\uff23") == "ABC"

    def test_script_urls(self):
        assert sanitize_string("javascript:alert(1)") == "alert(1)"

    @pytest.mark.parametrize("value", [None, "", "   ", 42, ["a"]])
    def test_empty_and_non_strings(self, value):
        assert sanitize_string(value) == ""


class TestStripDangerousTags:
    def test_style_block(self):
        assert strip_dangerous_tags("<style>body{}</style>kept") == "kept"

    def test_empty(self):
        assert strip_dangerous_tags("") == ""


class TestSanitizeStringArray:
    def test_drops_blank_and_non_strings(self):
        assert sanitize_string_array([" a ", "", None, 3, "<b></b>", "b"]) == ["a", "b"]

    def test_order_is_kept(self):
        assert sanitize_string_array(["SEAL-2", "SEAL-1"]) == ["SEAL-2", "SEAL-1"]

    @pytest.mark.parametrize("value", [None, "SEAL-1", b"SEAL-1"])
    def test_non_iterables_of_strings(self, value):
        assert sanitize_string_array(value) == []
