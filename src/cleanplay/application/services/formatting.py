"""HTML snippets shared by user-facing messages (Telegram's HTML subset)."""

import html

from cleanplay.domain.entities import ShortTrack


def track_link(track: ShortTrack) -> str:
    """`<a href="...">Artist — Title</a>`, or the escaped name when there's no URL."""
    name = html.escape(track.name_with_artists)
    if not track.url:
        return name
    return f'<a href="{html.escape(track.url, quote=True)}">{name}</a>'


def link(url: str, text: str) -> str:
    return f'<a href="{html.escape(url, quote=True)}">{html.escape(text)}</a>'
