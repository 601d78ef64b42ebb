"""HTML building blocks.

Every adapter-derived string reaches a page through ``esc()``.  Fragments
that are already safe are ``Markup`` instances; anything else handed to
``table()`` or ``tag()`` is escaped on the way in.
"""

from __future__ import annotations

import html
import json
from collections.abc import Iterable, Sequence
from typing import Any


class Markup(str):
    """Text that is already escaped for HTML."""


def esc(value: Any) -> Markup:
    if isinstance(value, Markup):
        return value
    return Markup(html.escape("" if value is None else str(value), quote=True))


def join(parts: Iterable[Any], sep: str = "\n") -> Markup:
    return Markup(sep.join(esc(p) for p in parts))


def tag(name: str, content: Any = "", **attrs: Any) -> Markup:
    """``<name attr="...">content</name>`` with escaped attributes and content."""
    rendered = "".join(
        f' {key.rstrip("_").replace("_", "-")}="{esc(value)}"'
        for key, value in attrs.items()
        if value is not None
    )
    return Markup(f"<{name}{rendered}>{esc(content)}</{name}>")


def table(
    headers: Sequence[str],
    rows: Iterable[Sequence[Any]],
    row_attrs: Iterable[dict[str, Any]] | None = None,
    css_class: str = "data",
) -> Markup:
    head = "".join(f"<th>{esc(h)}</th>" for h in headers)
    attrs_iter = iter(row_attrs) if row_attrs is not None else None
    body = []
    for row in rows:
        attrs = next(attrs_iter, {}) if attrs_iter is not None else {}
        rendered = "".join(f' {k.replace("_", "-")}="{esc(v)}"' for k, v in attrs.items())
        cells = "".join(f"<td>{esc(cell)}</td>" for cell in row)
        body.append(f"<tr{rendered}>{cells}</tr>")
    if not body:
        body.append(f'<tr><td colspan="{len(headers)}" class="empty">No data</td></tr>')
    return Markup(
        f'<table class="{esc(css_class)}"><thead><tr>{head}</tr></thead>'
        f"<tbody>{''.join(body)}</tbody></table>"
    )


def badge(text: str, level: str) -> Markup:
    return tag("span", text, class_=f"badge badge-{level}")


def script_json(obj: Any) -> Markup:
    """JSON safe to embed inside a ``<script>`` element."""
    text = json.dumps(obj, sort_keys=True, ensure_ascii=True)
    return Markup(text.replace("<", "\\u003c").replace(">", "\\u003e").replace("&", "\\u0026"))


_STYLE = """
body { font-family: -apple-system, 'Segoe UI', Roboto, sans-serif; margin: 0; background: #f5f6f8; color: #222; }
header { background: #1f2937; color: #fff; padding: 1.25rem 2rem; }
header h1 { margin: 0; font-size: 1.5rem; }
header .meta { opacity: .75; font-size: .85rem; }
main { padding: 1.5rem 2rem; }
section { background: #fff; border-radius: 8px; padding: 1rem 1.5rem; margin-bottom: 1.25rem; box-shadow: 0 1px 2px rgba(0,0,0,.06); }
.cards { display: flex; flex-wrap: wrap; gap: 1rem; }
.card { flex: 1 1 140px; background: #f9fafb; border-radius: 6px; padding: .75rem 1rem; }
.card .value { font-size: 1.6rem; font-weight: 600; }
table.data { width: 100%; border-collapse: collapse; font-size: .9rem; }
table.data th, table.data td { text-align: left; padding: .4rem .6rem; border-bottom: 1px solid #e5e7eb; }
td.empty { color: #888; font-style: italic; }
.badge { padding: .1rem .5rem; border-radius: 999px; font-size: .8rem; font-weight: 600; }
.badge-excellent, .badge-good, .badge-pass { background: #d1fae5; color: #065f46; }
.badge-warning { background: #fef3c7; color: #92400e; }
.badge-critical, .badge-fail { background: #fee2e2; color: #991b1b; }
.gallery { display: flex; flex-wrap: wrap; gap: .75rem; }
.gallery figure { margin: 0; width: 220px; }
.gallery img, .gallery video { width: 100%; border: 1px solid #ddd; border-radius: 4px; }
.gallery figcaption { font-size: .75rem; word-break: break-all; }
.filters { margin-bottom: 1rem; display: flex; gap: .75rem; }
"""


def page(title: str, sections: Iterable[Any], subtitle: str = "", script: Any = "") -> str:
    """Render a complete standalone HTML document."""
    body = "\n".join(esc(s) for s in sections)
    return (
        "<!DOCTYPE html>\n"
        '<html lang="en">\n<head>\n<meta charset="utf-8">\n'
        '<meta name="viewport" content="width=device-width, initial-scale=1">\n'
        f"<title>{esc(title)}</title>\n<style>{_STYLE}</style>\n</head>\n<body>\n"
        f'<header><h1>{esc(title)}</h1><div class="meta">{esc(subtitle)}</div></header>\n'
        f"<main>\n{body}\n</main>\n{esc(script)}\n</body>\n</html>\n"
    )


def section(heading: str, *content: Any, **attrs: Any) -> Markup:
    inner = "\n".join(esc(c) for c in content)
    rendered = "".join(f' {k.rstrip("_").replace("_", "-")}="{esc(v)}"' for k, v in attrs.items())
    return Markup(f"<section{rendered}><h2>{esc(heading)}</h2>\n{inner}\n</section>")


def cards(items: Iterable[tuple[str, Any]]) -> Markup:
    rendered = "".join(
        f'<div class="card"><div class="label">{esc(label)}</div>'
        f'<div class="value">{esc(value)}</div></div>'
        for label, value in items
    )
    return Markup(f'<div class="cards">{rendered}</div>')
