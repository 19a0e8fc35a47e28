"""Page text extraction and structural detection tools."""

import json
import logging

from ..cleaners import filter_page_text
from ..decorators import ensure_session_active, tool_envelope
from ..results import ToolResult
from .catalog import DetectProductsArgs, ExtractArgs

logger = logging.getLogger(__name__)

DOM_SNAPSHOT_URI = "browser://snapshot/dom"

# Each script is a WebDriver function body; values are returned as JSON-able data.

FORMS_SCRIPT = """
const labelOf = (f) => {
  if (f.labels && f.labels.length) return f.labels[0].innerText.trim();
  return f.getAttribute('aria-label') || null;
};
return Array.from(document.forms).map((form, i) => ({
  index: i,
  frameUrl: location.href,
  id: form.id || null,
  name: form.getAttribute('name'),
  action: form.getAttribute('action'),
  method: (form.getAttribute('method') || 'get').toLowerCase(),
  fields: Array.from(form.querySelectorAll('input, select, textarea, button')).map((f) => ({
    tag: f.tagName.toLowerCase(),
    type: f.getAttribute('type'),
    name: f.getAttribute('name'),
    id: f.id || null,
    label: labelOf(f),
    placeholder: f.getAttribute('placeholder'),
    required: !!f.required,
    disabled: !!f.disabled,
    value: f.type === 'password' ? null : (f.value === undefined ? null : f.value),
    options: f.tagName === 'SELECT'
      ? Array.from(f.options).map((o) => ({ value: o.value, text: o.text, selected: o.selected }))
      : null,
  })),
}));
"""

CTAS_SCRIPT = """
const selector = "a, button, input[type='button'], input[type='submit']";
return Array.from(document.querySelectorAll(selector)).map((el) => {
  const r = el.getBoundingClientRect();
  const s = window.getComputedStyle(el);
  return {
    tag: el.tagName.toLowerCase(),
    text: (el.innerText || el.value || el.getAttribute('aria-label') || '').trim(),
    href: el.getAttribute('href'),
    classList: Array.from(el.classList),
    boundingBox: { x: r.x, y: r.y, width: r.width, height: r.height },
    visible: r.width > 0 && r.height > 0 && s.display !== 'none'
      && s.visibility !== 'hidden' && parseFloat(s.opacity || '1') > 0,
  };
});
"""

PRODUCTS_SCRIPT = """
const hints = (arguments[0] || []).map((h) => String(h).toLowerCase());
const textOf = (root, sel) => {
  const n = root.querySelector(sel);
  return n && n.innerText ? n.innerText.trim() : null;
};
return Array.from(document.querySelectorAll('div, section, article, li'))
  .filter((el) => {
    const txt = (el.textContent || '').toLowerCase();
    return hints.some((h) => txt.includes(h));
  })
  .map((el) => {
    const img = el.querySelector('img');
    const link = el.querySelector('a');
    const qty = el.querySelector("input[type='number']");
    return {
      id: el.id || null,
      classList: Array.from(el.classList),
      dataset: Object.assign({}, el.dataset),
      text: (el.textContent || '').trim() || null,
      price: textOf(el, '.price'),
      availability: textOf(el, '.availability'),
      quantity: qty ? qty.value : null,
      image: img ? img.getAttribute('src') : null,
      link: link ? link.getAttribute('href') : null,
    };
  });
"""

SCROLLERS_SCRIPT = """
return Array.from(document.querySelectorAll('*'))
  .filter((n) => {
    const s = window.getComputedStyle(n);
    return (s.overflowY === 'scroll' || s.overflowY === 'auto') && n.scrollHeight > n.clientHeight;
  })
  .map((n) => {
    const r = n.getBoundingClientRect();
    return {
      id: n.id || null,
      tag: n.tagName.toLowerCase(),
      boundingBox: { x: r.x, y: r.y, width: r.width, height: r.height },
    };
  });
"""


def _json_text(value) -> ToolResult:
    return ToolResult.text(json.dumps(value, indent=2, ensure_ascii=False, default=str))


@tool_envelope("Failed to extract content")
@ensure_session_active
async def browser_extract(args: ExtractArgs, ctx) -> ToolResult:
    raw = await ctx.handle.body_text()
    lines = filter_page_text(raw)
    logger.debug(f"extract kept {len(lines)} lines for: {args.summary}")
    return ToolResult.text("Extracted content:\n" + "\n".join(lines))


@tool_envelope("Error in detect_forms")
@ensure_session_active
async def browser_detect_forms(args, ctx) -> ToolResult:
    """Forms of the top document first, then those of each reachable frame."""
    per_frame = await ctx.handle.evaluate_in_frames(FORMS_SCRIPT)
    forms = []
    for frame_forms in per_frame:
        forms.extend(frame_forms or [])
    return _json_text(forms)


@tool_envelope("Error in detect_ctas")
@ensure_session_active
async def browser_detect_ctas(args, ctx) -> ToolResult:
    return _json_text(await ctx.handle.evaluate(CTAS_SCRIPT) or [])


@tool_envelope("Error in detect_products")
@ensure_session_active
async def browser_detect_products(args: DetectProductsArgs, ctx) -> ToolResult:
    """Blocks whose text contains any hint. Without hints nothing matches."""
    return _json_text(await ctx.handle.evaluate(PRODUCTS_SCRIPT, list(args.hints or [])) or [])


@tool_envelope("Error in snapshot_dom")
@ensure_session_active
async def browser_snapshot_dom(args, ctx) -> ToolResult:
    html = await ctx.handle.content()
    return ToolResult.json_resource(DOM_SNAPSHOT_URI, {"dom": html})


@tool_envelope("Error in detect_scrollers")
@ensure_session_active
async def browser_detect_scrollers(args, ctx) -> ToolResult:
    return _json_text(await ctx.handle.evaluate(SCROLLERS_SCRIPT) or [])


__all__ = [
    "browser_extract",
    "browser_detect_forms",
    "browser_detect_ctas",
    "browser_detect_products",
    "browser_snapshot_dom",
    "browser_detect_scrollers",
]
