"""Element targeting protocol between the host and a rendered document.

The generated document carries ``SELECTION_SCRIPT`` verbatim at the end of
its body. On a click on any non-root element the script cancels default
handling, marks the element (clearing the previous mark), and posts
``{type: "element-selected", payload: {...}}`` to the parent window.
``derive_selector`` mirrors the script's selector rules for host-side use.
"""

import re
from collections.abc import Iterable

SCRIPT_ID = "agent-dash-selection-script"

SELECTION_SCRIPT = """<script id="agent-dash-selection-script">
(function () {
  var MARK = 'data-agent-dash-selected';
  var style = document.createElement('style');
  style.textContent = '[' + MARK + '] { outline: 2px solid #2563eb !important; outline-offset: 2px !important; }';
  document.head.appendChild(style);

  function deriveSelector(el) {
    if (el.id) { return '#' + el.id; }
    var selector = el.tagName.toLowerCase();
    var classes = (el.getAttribute('class') || '').split(/\\s+/).filter(function (c) {
      return c && c.indexOf(':') === -1 && c.indexOf('hover') === -1;
    });
    if (classes.length) { selector += '.' + classes.join('.'); }
    return selector;
  }

  document.addEventListener('click', function (event) {
    var el = event.target;
    if (!el || el === document.documentElement || el === document.body) { return; }
    event.preventDefault();
    event.stopPropagation();
    var previous = document.querySelectorAll('[' + MARK + ']');
    for (var i = 0; i < previous.length; i++) { previous[i].removeAttribute(MARK); }
    el.setAttribute(MARK, 'true');
    window.parent.postMessage({
      type: 'element-selected',
      payload: {
        selector: deriveSelector(el),
        tagName: el.tagName,
        id: el.id || '',
        className: el.getAttribute('class') || '',
        innerText: (el.innerText || '').substring(0, 200)
      }
    }, '*');
  }, true);
})();
</script>"""

_SCRIPT_BLOCK = re.compile(
    r'<script\s+id=["\']' + re.escape(SCRIPT_ID) + r'["\'][^>]*>.*?</script>\s*',
    re.IGNORECASE | re.DOTALL,
)
_BODY_CLOSE = re.compile(r"</body\s*>", re.IGNORECASE)


def _is_targetable_class(name: str) -> bool:
    # Pseudo-state utility classes (e.g. "hover:shadow") are not stable addresses
    return bool(name) and ":" not in name and "hover" not in name


def derive_selector(element_id: str, tag_name: str, class_names: str | Iterable[str] = "") -> str:
    """Derive a selector with the same precedence as the embedded script.

    ``#id`` wins regardless of classes; otherwise the lowercase tag name
    suffixed with each targetable class.
    """
    if element_id:
        return f"#{element_id}"

    if isinstance(class_names, str):
        class_names = class_names.split()

    classes = [name for name in class_names if _is_targetable_class(name)]
    selector = tag_name.lower()
    if classes:
        selector += "." + ".".join(classes)
    return selector


def has_selection_script(document: str) -> bool:
    """Check whether the document embeds the selection script."""
    return _SCRIPT_BLOCK.search(document) is not None


def strip_selection_script(document: str) -> str:
    """Remove the selection script, producing a standalone read-only view."""
    return _SCRIPT_BLOCK.sub("", document)


def ensure_selection_script(document: str) -> str:
    """Return the document with exactly one verbatim selection script.

    Any existing (possibly altered) block is replaced; the script goes right
    before the last ``</body>``, or at the end when there is no body close.
    """
    stripped = strip_selection_script(document)

    closes = list(_BODY_CLOSE.finditer(stripped))
    if not closes:
        return f"{stripped.rstrip()}\n{SELECTION_SCRIPT}\n"

    position = closes[-1].start()
    return f"{stripped[:position]}{SELECTION_SCRIPT}\n{stripped[position:]}"
