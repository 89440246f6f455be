"""
=============================================================================
INDEX RENDERER
=============================================================================

Renders a directory listing as an HTML table.

=============================================================================
OUTPUT FORMAT
=============================================================================

    index of /docs/

    ┌──────────┬────────────────────────────────────────────────────────┐
    │ size     │ link                                                   │
    ├──────────┼────────────────────────────────────────────────────────┤
    │          │ <a href="/docs/images/">images/</a>        DIRECTORY   │
    │ 1.2 kB   │ <a href="/docs/notes.txt">notes.txt</a>    REGULAR     │
    │          │ <a href="/docs/latest">latest →</a>        SYMLINK     │
    └──────────┴────────────────────────────────────────────────────────┘

The arrow is part of the label only, never of the href.

=============================================================================
ESCAPING
=============================================================================

File names are attacker-controlled as far as the page is concerned:

    name = '<script>alert(1)</script>.txt'

Every name and the base prefix go through html.escape() before they
reach the page. Hrefs are additionally percent-encoded so names with
"#", "?" or spaces still point at the right file; the request parser
decodes them on the way back in.

=============================================================================
"""

import html
import io
from dataclasses import dataclass
from typing import Iterable, TextIO
from urllib.parse import quote

from .entries import EntryType, FileEntry


@dataclass(frozen=True)
class RenderContext:
    """Everything the renderer needs for one page."""

    base: str
    entries: tuple[FileEntry, ...]

    @classmethod
    def create(cls, base: str, entries: Iterable[FileEntry]) -> "RenderContext":
        if not base.endswith("/"):
            base += "/"
        return cls(base=base, entries=tuple(entries))


_PAGE_HEAD = """<html>
<head>
<meta charset="utf-8">
<title>index of {base}</title>
</head>
<body>

index of {base}

<table>
"""

_PAGE_TAIL = """</table>

</body>
</html>
"""

_ROW = "\t<tr>\n\t\t<td>{size}</td>\n\t\t<td>{cell}</td>\n\t</tr>\n"


class IndexRenderer:
    """
    Renders RenderContext values to HTML.

    Stateless, so one instance is built at startup and shared by all
    worker threads.

    Usage:
        renderer = IndexRenderer()
        page = renderer.render(RenderContext.create("/", entries))
    """

    def render(self, context: RenderContext) -> bytes:
        """Render a complete page to UTF-8 bytes."""
        buffer = io.StringIO()
        self.render_to(buffer, context)
        return buffer.getvalue().encode("utf-8")

    def render_to(self, stream: TextIO, context: RenderContext) -> None:
        """
        Write the page to a text stream, row by row.

        If a row fails to render, everything written before it stays in
        the stream and the exception propagates.
        """
        base = html.escape(context.base)
        stream.write(_PAGE_HEAD.format(base=base))
        for entry in context.entries:
            stream.write(self.render_row(context.base, entry))
        stream.write(_PAGE_TAIL)

    def render_row(self, base: str, entry: FileEntry) -> str:
        """Render a single table row for an entry."""
        name = html.escape(entry.name)

        if entry.type == EntryType.DIRECTORY:
            href = self._href(base, entry.name + "/")
            return _ROW.format(size="", cell=f'<a href="{href}">{name}/</a>')

        if entry.type == EntryType.REGULAR:
            href = self._href(base, entry.name)
            size = html.escape(entry.size_display)
            return _ROW.format(size=size, cell=f'<a href="{href}">{name}</a>')

        if entry.type == EntryType.SYMLINK:
            href = self._href(base, entry.name)
            return _ROW.format(size="", cell=f'<a href="{href}">{name} →</a>')

        return _ROW.format(size="", cell=f"{name} [unknown type {int(entry.type)}]")

    @staticmethod
    def _href(base: str, name: str) -> str:
        return html.escape(quote(base + name, safe="/"), quote=True)
