"""
Playwright Rendering Engine
===========================

Headless Chromium implementation of the rendering engine. A single browser
page hosts the live preview; exports read computed styles from it and render
static trees in scoped scratch containers attached below the preview.
"""

from typing import Any, AsyncGenerator, Dict, List, Optional, Sequence, Type
from contextlib import asynccontextmanager
import uuid

from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Page,
    Playwright,
    Request,
    async_playwright,
)

from htmlsnap.config.logging import get_logger
from htmlsnap.config.settings import get_settings
from htmlsnap.core.rendering.engine import GlyphBox, PixelBuffer, RenderingEngine, Scratch
from htmlsnap.core.snapshot.nodes import LiveElement
from htmlsnap.core.styles.style_map import StyleDeclaration
from htmlsnap.errors import (
    AssetLoadError,
    DetachedRootError,
    ExportError,
    HtmlSnapError,
    PreviewRenderError,
    RasterizationError,
    StylePropertyRejected,
)

logger = get_logger(__name__)

PREVIEW_ID = "htmlsnap-preview"

ASSET_RESOURCE_TYPES = frozenset({"font", "image", "stylesheet"})

BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-features=VizDisplayCompositor",
    "--font-render-hinting=none",
]

PREVIEW_SHELL = f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>htmlsnap preview</title></head>
<body style="margin: 0;"><div id="{PREVIEW_ID}"></div></body>
</html>"""

NEXT_FRAME_JS = "() => new Promise(resolve => requestAnimationFrame(() => resolve(true)))"

CAPTURE_JS = """
(rootId) => {
  const SKIP = new Set(["SCRIPT", "STYLE", "TEMPLATE", "NOSCRIPT", "LINK", "META"]);
  const registry = [];
  window.__htmlsnapRegistry = registry;
  const walk = (el) => {
    const rect = el.getBoundingClientRect();
    const attributes = {};
    for (const attr of el.attributes) attributes[attr.name] = attr.value;
    const node = {
      tag: el.tagName.toLowerCase(),
      attributes,
      connected: el.isConnected,
      geometry: {
        x: rect.left + window.scrollX,
        y: rect.top + window.scrollY,
        width: rect.width,
        height: rect.height,
      },
      ref: registry.length,
      children: [],
    };
    registry.push(el);
    for (const child of el.childNodes) {
      if (child.nodeType === Node.TEXT_NODE) {
        node.children.push({type: "text", content: child.nodeValue});
      } else if (child.nodeType === Node.ELEMENT_NODE && !SKIP.has(child.tagName.toUpperCase())) {
        node.children.push(walk(child));
      }
    }
    return node;
  };
  const root = document.getElementById(rootId);
  return root ? walk(root) : null;
}
"""

RESOLVE_STYLE_JS = """
([ref, pseudo, properties]) => {
  const el = (window.__htmlsnapRegistry || [])[ref];
  if (!el || !el.isConnected) return null;
  const computed = getComputedStyle(el, pseudo);
  const names = properties || Array.from(computed);
  const values = {};
  for (const name of names) values[name] = computed.getPropertyValue(name);
  return values;
}
"""

SUPPORTS_JS = """
(pairs) => pairs.map(([name, value]) => CSS.supports(name, value))
"""

RENDER_PREVIEW_JS = """
([rootId, markup]) => {
  document.getElementById(rootId).innerHTML = markup;
}
"""

WAIT_FOR_ASSETS_JS = """
async () => {
  await document.fonts.ready;
  const pending = Array.from(document.images).filter(img => !img.complete);
  await Promise.all(pending.map(img => new Promise(resolve => {
    img.addEventListener("load", resolve, {once: true});
    img.addEventListener("error", resolve, {once: true});
  })));
  const failedFonts = [];
  document.fonts.forEach(face => {
    if (face.status === "error") failedFonts.push(face.family);
  });
  return failedFonts;
}
"""

ATTACH_SCRATCH_JS = """
({id, width, padding, background}) => {
  const container = document.createElement("div");
  container.id = id;
  const top = document.documentElement.scrollHeight + 100;
  container.style.cssText = [
    "position: absolute",
    "left: 0",
    `top: ${top}px`,
    `width: ${width}px`,
    "box-sizing: border-box",
    `padding: ${padding}px`,
    `background: ${background}`,
  ].join("; ");
  document.body.appendChild(container);
}
"""

DETACH_SCRATCH_JS = """
(id) => {
  const container = document.getElementById(id);
  if (container) container.remove();
}
"""

MOUNT_SCRATCH_JS = """
([id, html, hideText]) => {
  const container = document.getElementById(id);
  if (!container) return false;
  let prefix = "";
  if (hideText) {
    prefix = `<style>#${id}, #${id} * { color: transparent !important; ` +
      `-webkit-text-fill-color: transparent !important; text-shadow: none !important; }</style>`;
  }
  container.innerHTML = prefix + html;
  return true;
}
"""

MEASURE_SCRATCH_JS = """
(id) => {
  const rect = document.getElementById(id).getBoundingClientRect();
  return [rect.width, rect.height];
}
"""

GLYPH_BOXES_JS = """
(id) => {
  const root = document.getElementById(id);
  const base = root.getBoundingClientRect();
  const boxes = [];
  const range = document.createRange();
  const walker = document.createTreeWalker(root, NodeFilter.SHOW_TEXT);
  let node;
  while ((node = walker.nextNode())) {
    const parent = node.parentElement;
    if (!parent || parent.tagName === "STYLE") continue;
    const style = getComputedStyle(parent);
    if (style.visibility === "hidden" || style.display === "none") continue;
    const text = node.nodeValue;
    let offset = 0;
    for (const char of text) {
      range.setStart(node, offset);
      range.setEnd(node, offset + char.length);
      offset += char.length;
      const rects = range.getClientRects();
      if (!rects.length) continue;
      const rect = rects[0];
      if (rect.width === 0 && rect.height === 0) continue;
      boxes.push({
        char,
        x: rect.left - base.left,
        y: rect.top - base.top,
        width: rect.width,
        height: rect.height,
        font_size: parseFloat(style.fontSize),
        color: style.color,
      });
    }
  }
  return boxes;
}
"""


async def evaluate(
    page: Page, script: str, arg: Any = None, error: Type[HtmlSnapError] = ExportError
) -> Any:
    """
    Evaluate a script in the page.

    Raises:
        HtmlSnapError: ``error`` wrapping any browser-side failure, e.g. a closed
            page or a destroyed execution context
    """
    try:
        return await page.evaluate(script, arg)
    except PlaywrightError as e:
        raise error(f"Browser evaluation failed: {e}")


class PlaywrightScratch(Scratch):
    """Scratch container living inside the preview page."""

    def __init__(self, page: Page, container_id: str, width: int):
        self.page = page
        self.container_id = container_id
        self.width = width

    async def mount(self, html: str, hide_text: bool = False) -> None:
        mounted = await evaluate(
            self.page, MOUNT_SCRATCH_JS, [self.container_id, html, hide_text], RasterizationError
        )
        if not mounted:
            raise RasterizationError(f"Scratch container {self.container_id} is gone")
        await evaluate(self.page, NEXT_FRAME_JS, error=RasterizationError)

    async def rasterize(self) -> PixelBuffer:
        try:
            element = await self.page.query_selector(f"#{self.container_id}")
            if element is None:
                raise RasterizationError(f"Scratch container {self.container_id} is gone")
            png_bytes = await element.screenshot(type="png")
        except PlaywrightError as e:
            raise RasterizationError(f"Scratch screenshot failed: {e}")
        return PixelBuffer.from_png(png_bytes)

    async def measure(self) -> tuple[float, float]:
        width, height = await evaluate(
            self.page, MEASURE_SCRATCH_JS, self.container_id, RasterizationError
        )
        return float(width), float(height)

    async def glyph_boxes(self) -> List[GlyphBox]:
        raw = await evaluate(self.page, GLYPH_BOXES_JS, self.container_id, RasterizationError)
        return [GlyphBox(**box) for box in raw]


class PlaywrightRenderingEngine(RenderingEngine):
    """Rendering engine backed by one headless Chromium page."""

    def __init__(self) -> None:
        self.settings = get_settings()
        self.logger: Any = logger.bind(component="playwright_engine")  # structlog.BoundLoggerBase
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None
        self._failed_assets: List[AssetLoadError] = []

    async def start(self) -> None:
        """Launch the browser and load the preview shell."""
        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.settings.playwright_headless,
                args=BROWSER_ARGS,
            )
            context_options: Dict[str, Any] = {
                "viewport": {
                    "width": self.settings.preview_width,
                    "height": self.settings.preview_height,
                },
                "device_scale_factor": self.settings.device_scale_factor,
            }
            self._context = await self._browser.new_context(**context_options)
            self._page = await self._context.new_page()
            self._page.set_default_timeout(self.settings.playwright_timeout)
            self._page.on("requestfailed", self._on_request_failed)
            await self._page.set_content(PREVIEW_SHELL, wait_until="domcontentloaded")

            self.logger.info(
                "Rendering engine started",
                preview_width=self.settings.preview_width,
                device_scale_factor=self.settings.device_scale_factor,
            )
        except PlaywrightError as e:
            self.logger.error("Failed to start rendering engine", error=str(e))
            await self.close()
            raise HtmlSnapError(f"Rendering engine initialization failed: {e}")

    async def close(self) -> None:
        """Close the page, browser and Playwright driver."""
        if self._context:
            await self._context.close()
        if self._browser:
            await self._browser.close()
        if self._playwright:
            await self._playwright.stop()

        self._page = None
        self._context = None
        self._browser = None
        self._playwright = None
        self.logger.info("Rendering engine closed")

    async def __aenter__(self) -> "PlaywrightRenderingEngine":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @property
    def page(self) -> Page:
        if self._page is None:
            raise HtmlSnapError("Rendering engine not started")
        return self._page

    def _on_request_failed(self, request: Request) -> None:
        if request.resource_type in ASSET_RESOURCE_TYPES:
            reason = request.failure or "request failed"
            self._failed_assets.append(AssetLoadError(request.url, reason))
            self.logger.debug("Asset request failed", url=request.url, reason=reason)

    async def resolve_style(
        self,
        element: LiveElement,
        pseudo: Optional[str] = None,
        properties: Optional[Sequence[str]] = None,
    ) -> Dict[str, str]:
        names = list(properties) if properties is not None else None
        values = await evaluate(self.page, RESOLVE_STYLE_JS, [element.ref, pseudo, names])
        if values is None:
            element.connected = False
            raise DetachedRootError(f"<{element.tag}> is no longer attached")
        return values

    async def validate_declarations(
        self, element: LiveElement, declarations: Sequence[StyleDeclaration]
    ) -> List[StylePropertyRejected]:
        rejected = await super().validate_declarations(element, declarations)
        refused = {(e.name, e.value) for e in rejected}
        candidates = [d for d in declarations if (d.name, d.value) not in refused]
        if not candidates:
            return rejected

        # Custom properties accept any value; CSS.supports agrees
        supported = await evaluate(
            self.page, SUPPORTS_JS, [[d.name, d.value] for d in candidates]
        )
        for declaration, ok in zip(candidates, supported):
            if not ok:
                rejected.append(
                    StylePropertyRejected(declaration.name, declaration.value, "refused by engine")
                )
        return rejected

    async def capture_document(self) -> LiveElement:
        data = await evaluate(self.page, CAPTURE_JS, PREVIEW_ID)
        if data is None:
            raise DetachedRootError("Preview container is missing")
        return LiveElement.from_dict(data)

    async def render_preview(self, markup: str) -> None:
        await evaluate(self.page, RENDER_PREVIEW_JS, [PREVIEW_ID, markup], PreviewRenderError)
        await evaluate(self.page, NEXT_FRAME_JS, error=PreviewRenderError)
        self.logger.debug("Preview rendered", markup_length=len(markup))

    async def wait_for_assets(self) -> List[AssetLoadError]:
        # No timeout: a font that never settles blocks the export
        failed_fonts = await evaluate(self.page, WAIT_FOR_ASSETS_JS)

        failures = list(self._failed_assets)
        self._failed_assets.clear()
        for family in failed_fonts:
            failures.append(AssetLoadError(family, "font face failed to load"))

        if failures:
            self.logger.warning("Assets failed to load", count=len(failures))
        return failures

    @asynccontextmanager
    async def scratch_container(self, width: int) -> AsyncGenerator[Scratch, None]:
        page = self.page
        container_id = f"htmlsnap-scratch-{uuid.uuid4().hex[:12]}"
        await evaluate(
            page,
            ATTACH_SCRATCH_JS,
            {
                "id": container_id,
                "width": width,
                "padding": self.settings.scratch_padding,
                "background": self.settings.scratch_background,
            },
            RasterizationError,
        )
        self.logger.debug("Scratch container attached", container=container_id, width=width)

        try:
            yield PlaywrightScratch(page, container_id, width)
        finally:
            try:
                await page.evaluate(DETACH_SCRATCH_JS, container_id)
            except PlaywrightError as e:
                self.logger.warning(
                    "Failed to remove scratch container", container=container_id, error=str(e)
                )
            else:
                self.logger.debug("Scratch container removed", container=container_id)


async def create_rendering_engine() -> PlaywrightRenderingEngine:
    """Create and start a Playwright rendering engine."""
    engine = PlaywrightRenderingEngine()
    await engine.start()
    return engine
