"""
Error Taxonomy
==============

Exceptions and warnings raised by the snapshot, selection, rasterization
and preview pipeline. Property-level failures are absorbed where they occur;
export-level failures abort the current export only.
"""

from typing import Optional


class HtmlSnapError(Exception):
    """Base exception for all htmlsnap failures."""

    pass


class ExportError(HtmlSnapError):
    """Exception raised when an export invocation cannot complete."""

    pass


class DetachedRootError(ExportError):
    """Exception raised when a snapshot root is absent or not attached."""

    pass


class SnapshotStructureError(ExportError):
    """Exception raised when a clone's children diverge from its source."""

    def __init__(self, tag: str, expected: int, actual: int):
        self.tag = tag
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Snapshot of <{tag}> has {actual} children, source has {expected}"
        )


class RasterizationError(ExportError):
    """Exception raised when the rendering engine fails to produce pixels."""

    pass


class PreviewRenderError(HtmlSnapError):
    """Exception raised when the live preview cannot be refreshed."""

    pass


class StylePropertyRejected(HtmlSnapError):
    """A single declaration the rendering engine refused."""

    def __init__(self, name: str, value: str, reason: Optional[str] = None):
        self.name = name
        self.value = value
        self.reason = reason
        message = f"Rejected style declaration {name}: {value}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class ComponentEvaluationError(HtmlSnapError):
    """Exception raised when a component template cannot be evaluated."""

    pass


class AssetLoadError(HtmlSnapError):
    """A font or icon asset that could not be loaded."""

    def __init__(self, url: str, reason: str = ""):
        self.url = url
        self.reason = reason
        super().__init__(f"Asset failed to load: {url}" + (f" ({reason})" if reason else ""))


class NoMatchWarning(UserWarning):
    """Selection marker matched no element; the whole document is exported."""

    pass
