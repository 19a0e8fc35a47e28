# mcp_browser_sse/cleaners.py

import re
from typing import Any, Dict, List, Optional

HIDDEN_CLASS_PAT = re.compile(r"(sr-only|visually-hidden|offscreen)", re.I)

# ============================================================================
# Page text filtering
# ============================================================================

# Structural/styling noise that leaks into document.body.innerText
CSS_RULE_OPEN_PAT = re.compile(r"^\.[a-zA-Z0-9_-]+\s*{")
CSS_DECLARATION_PAT = re.compile(r"^[a-zA-Z-]+:[a-zA-Z0-9%\s().,-]+;$")

SURROGATE_PAIR_ESCAPE_PAT = re.compile(r"\\u([dD][89abAB][0-9a-fA-F]{2})\\u([dD][c-fC-F][0-9a-fA-F]{2})")
UNICODE_ESCAPE_PAT = re.compile(r"\\u([0-9a-fA-F]{4})")

# Characters JavaScript's String.prototype.trim() removes (WhiteSpace + LineTerminator).
JS_WHITESPACE = (
    "\t\n\v\f\r \u00a0\u1680\u2000\u2001\u2002\u2003\u2004\u2005\u2006"
    "\u2007\u2008\u2009\u200a\u2028\u2029\u202f\u205f\u3000\ufeff"
)


def _is_style_noise(line: str) -> bool:
    return bool(
        ("{" in line and "}" in line)
        or "@keyframes" in line
        or CSS_RULE_OPEN_PAT.match(line)
        or CSS_DECLARATION_PAT.match(line)
    )


def _decode_unicode_escapes(line: str) -> str:
    """
    Decode literal \\uXXXX escapes.

    Escaped surrogate pairs are combined into one code point; a lone escaped
    surrogate is left untouched since it cannot be represented on its own.
    """
    def _pair(m):
        hi, lo = int(m.group(1), 16), int(m.group(2), 16)
        return chr(0x10000 + ((hi - 0xD800) << 10) + (lo - 0xDC00))

    def _single(m):
        cp = int(m.group(1), 16)
        if 0xD800 <= cp <= 0xDFFF:
            return m.group(0)
        return chr(cp)

    line = SURROGATE_PAIR_ESCAPE_PAT.sub(_pair, line)
    return UNICODE_ESCAPE_PAT.sub(_single, line)


def filter_page_text(raw: Optional[str]) -> List[str]:
    """
    Reduce raw page text to content lines.

    Lines are trimmed; empty lines and lines that look like CSS (braces on the
    same line, @keyframes, `.class {` openers, `prop: value;` declarations) are
    dropped; escaped unicode sequences are decoded in what remains.

    Example:
        >>> filter_page_text("color: blue;\\n.foo {\\nHello world\\n")
        ['Hello world']
    """
    kept = []
    for line in (raw or "").split("\n"):
        line = line.strip(JS_WHITESPACE)
        if not line:
            continue
        if _is_style_noise(line):
            continue
        kept.append(_decode_unicode_escapes(line))
    return kept


# ============================================================================
# Interactive element discovery (for instruction resolution)
# ============================================================================

INTERACTIVE_TAGS = ("a", "button", "input", "select", "textarea", "summary", "option")
INTERACTIVE_ROLES = ("button", "link", "checkbox", "radio", "tab", "menuitem", "option", "switch", "combobox", "textbox")
KEPT_ATTRIBUTES = ("id", "name", "type", "placeholder", "aria-label", "title", "href", "value", "role", "alt")
SIMPLE_ID_PAT = re.compile(r"^[A-Za-z][\w-]*$")


def _is_button_like(el) -> bool:
    """
    Check if an element behaves like a button.

    Returns:
        bool: True if element is <button>, <input type="button/submit/reset/image">, or role="button"
    """
    tag = (el.name or "").lower()
    if tag == "button":
        return True
    typ = str(el.get("type", "")).lower()
    if tag == "input" and typ in ("button", "submit", "reset", "image"):
        return True
    return str(el.get("role", "")).lower() == "button"


def _is_hidden(el) -> bool:
    """Hidden via attribute, aria-hidden, inline style or screen-reader-only classes."""
    for node in [el, *el.parents]:
        if getattr(node, "attrs", None) is None:
            continue
        if node.has_attr("hidden"):
            return True
        if str(node.get("aria-hidden", "")).strip().lower() == "true":
            return True
        style_val = node.get("style")
        if isinstance(style_val, str):
            sv = style_val.lower()
            if re.search(r"display\s*:\s*none\b", sv) or re.search(r"visibility\s*:\s*hidden\b", sv):
                return True
        classes = node.get("class") or []
        classv = " ".join(classes) if isinstance(classes, (list, tuple)) else str(classes)
        if HIDDEN_CLASS_PAT.search(classv):
            return True
    if (el.name or "").lower() == "input" and str(el.get("type", "")).lower() == "hidden":
        return True
    return False


def _is_interactive(el) -> bool:
    tag = (el.name or "").lower()
    if tag == "a":
        return el.has_attr("href")
    if tag in INTERACTIVE_TAGS:
        return True
    if str(el.get("role", "")).lower() in INTERACTIVE_ROLES:
        return True
    if el.has_attr("onclick"):
        return True
    return str(el.get("contenteditable", "")).lower() in ("", "true") and el.has_attr("contenteditable")


def css_path(el, soup=None) -> str:
    """
    Build a CSS selector that addresses `el` uniquely within its document.

    Uses an #id anchor when the id is simple and unique, otherwise an
    nth-of-type chain from the root.
    """
    parts = []
    cur = el
    while cur is not None and cur.name and cur.name != "[document]":
        idv = cur.get("id")
        if isinstance(idv, str) and SIMPLE_ID_PAT.match(idv):
            if soup is None or len(soup.find_all(id=idv)) == 1:
                parts.append(f"#{idv}")
                break
        siblings = [s for s in cur.parent.find_all(cur.name, recursive=False)] if cur.parent is not None else [cur]
        if len(siblings) > 1:
            index = next(i for i, s in enumerate(siblings, start=1) if s is cur)
            parts.append(f"{cur.name}:nth-of-type({index})")
        else:
            parts.append(cur.name)
        cur = cur.parent
    return " > ".join(reversed(parts))


def interactive_elements(html: str, max_items: int = 150) -> List[Dict[str, Any]]:
    """
    List visible interactive elements of a page.

    Returns:
        [{"index": int, "tag": str, "text": str, "attributes": {...}, "selector": str}, ...]
    """
    import bs4
    soup = bs4.BeautifulSoup(html or "", "html.parser")
    for tag_name in ("script", "style", "noscript", "template"):
        for t in soup.find_all(tag_name):
            t.decompose()

    found = []
    for el in soup.find_all(True):
        if not _is_interactive(el) or _is_hidden(el):
            continue
        attrs = {}
        for key in KEPT_ATTRIBUTES:
            val = el.get(key)
            if val is None:
                continue
            attrs[key] = " ".join(val) if isinstance(val, (list, tuple)) else str(val)
        text = el.get_text(" ", strip=True)
        found.append({
            "index": len(found),
            "tag": el.name,
            "text": text[:120],
            "attributes": attrs,
            "button_like": _is_button_like(el),
            "selector": css_path(el, soup),
        })
        if len(found) >= max_items:
            break
    return found


__all__ = [
    "filter_page_text",
    "interactive_elements",
    "css_path",
]
