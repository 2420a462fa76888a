"""
Unit Tests for Class Selector & Filter
======================================
"""

import warnings

import pytest

from htmlsnap.core.snapshot.selector import WHOLE_DOCUMENT, select_roots
from htmlsnap.errors import NoMatchWarning

from tests.utils.mocks import build_tree, element, text


class TestSelectRoots:
    """Test export root selection."""

    @pytest.mark.parametrize("marker", ["", "   "])
    def test_blank_marker_selects_whole_document(self, marked_document, marker):
        """Test a blank marker exports the whole document."""
        roots = select_roots(marked_document, marker)

        assert len(roots) == 1
        assert roots[0].element is marked_document
        assert roots[0].is_whole_document

    def test_marker_selects_only_marked_element(self, marked_document):
        """Test siblings without the marker are excluded."""
        roots = select_roots(marked_document, "export-this")

        assert len(roots) == 1
        assert roots[0].origin == "export-this"
        assert roots[0].element.classes == ["card", "export-this"]
        tags = [child.tag for child in roots[0].element.iter_elements()]
        assert tags == ["h1", "p"]

    def test_marker_matches_class_tokens_not_substrings(self, marked_document):
        """Test 'export' does not match 'export-this'."""
        with pytest.warns(NoMatchWarning):
            roots = select_roots(marked_document, "export")
        assert roots[0].origin == WHOLE_DOCUMENT

    def test_multiple_matches_in_document_order(self):
        """Test every marked element becomes its own root."""
        tree = build_tree(
            element(
                "div",
                element("section", element("p", text("one"), class_="pick"), class_="pick"),
                element("p", text("two"), class_="pick"),
            )
        )

        roots = select_roots(tree, "pick")

        assert [root.element.tag for root in roots] == ["section", "p", "p"]
        assert all(root.origin == "pick" for root in roots)

    def test_no_match_warns_and_falls_back(self, marked_document):
        """Test an unmatched marker warns and exports the whole document."""
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            roots = select_roots(marked_document, "missing")

        assert [w.category for w in caught] == [NoMatchWarning]
        assert "missing" in str(caught[0].message)
        assert roots[0].element is marked_document
        assert roots[0].is_whole_document
