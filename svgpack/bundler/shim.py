"""Capability shim prepended to every logic bundle.

Scripts embedded in a standalone SVG document run without an HTML ``document.body``
and sometimes without ``localStorage`` (opaque origins, ``file://``). The shim
gives bundled code a small set of helpers that keep working in both cases and
declares which runtime capabilities the document relies on.
"""

from __future__ import annotations

import re

CAPABILITIES = ("offline", "storage")

CAPABILITY_DECLARATION = "var SVGPACK_CAPABILITIES = [{}];".format(
    ", ".join(f'"{name}"' for name in CAPABILITIES)
)

CAPABILITY_PATTERN = re.compile(r"SVGPACK_CAPABILITIES\s*=\s*\[([^\]]*)\]")

CAPABILITY_SHIM = (
    "/* svgpack capability shim */\n"
    + CAPABILITY_DECLARATION
    + "\n"
    + """\
function svgpackRoot() {
  return document.documentElement || document.rootElement || null;
}
function svgpackQuery(id) {
  try {
    return document.getElementById(id);
  } catch (err) {
    return null;
  }
}
function svgpackSetAttr(el, name, value) {
  if (!el || typeof el.setAttribute !== "function") {
    return false;
  }
  try {
    el.setAttribute(name, String(value));
    return true;
  } catch (err) {
    return false;
  }
}
var svgpackStorage = (function () {
  try {
    var probe = "__svgpack__";
    window.localStorage.setItem(probe, probe);
    window.localStorage.removeItem(probe);
    return window.localStorage;
  } catch (err) {
    var data = {};
    return {
      getItem: function (k) { return Object.prototype.hasOwnProperty.call(data, k) ? data[k] : null; },
      setItem: function (k, v) { data[k] = String(v); },
      removeItem: function (k) { delete data[k]; },
      clear: function () { data = {}; }
    };
  }
})();
"""
)


def declared_capabilities(text: str) -> list[str]:
    """Return the capability names declared in ``text``, in declaration order."""
    match = CAPABILITY_PATTERN.search(text)
    if not match:
        return []
    names = []
    for raw in match.group(1).split(","):
        name = raw.strip().strip("'\"")
        if name:
            names.append(name)
    return names


__all__ = ["CAPABILITIES", "CAPABILITY_SHIM", "declared_capabilities"]
