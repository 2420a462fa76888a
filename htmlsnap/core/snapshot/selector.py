"""
Class Selector & Filter
=======================

Chooses the subtrees to export: the whole document for a blank marker,
otherwise every element carrying the marker class, each as its own root.
"""

from typing import List
from dataclasses import dataclass
import warnings

from htmlsnap.config.logging import get_logger
from htmlsnap.core.snapshot.nodes import LiveElement
from htmlsnap.errors import NoMatchWarning

logger = get_logger(__name__)

WHOLE_DOCUMENT = "<whole-document>"


@dataclass
class ExportRoot:
    """One live subtree selected for export."""

    element: LiveElement
    origin: str

    @property
    def is_whole_document(self) -> bool:
        return self.origin == WHOLE_DOCUMENT


def select_roots(tree: LiveElement, marker: str) -> List[ExportRoot]:
    """
    Select export roots from a live tree.

    Args:
        tree: Live document root
        marker: Class token to match; blank selects the whole document

    Returns:
        Matching roots in document order, or the whole document when nothing
        matches (a NoMatchWarning is issued in that case)
    """
    marker = (marker or "").strip()
    if not marker:
        return [ExportRoot(tree, WHOLE_DOCUMENT)]

    matches = [
        ExportRoot(element, marker)
        for element in tree.iter_elements()
        if marker in element.classes
    ]

    if not matches:
        logger.warning("Marker matched no element, exporting whole document", marker=marker)
        warnings.warn(
            NoMatchWarning(f"No element has class '{marker}'; exporting the whole document"),
            stacklevel=2,
        )
        return [ExportRoot(tree, WHOLE_DOCUMENT)]

    logger.info("Selected export roots", marker=marker, count=len(matches))
    return matches
