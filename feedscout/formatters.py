"""Output formatters for discovered feeds."""
import io
import json
from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from feedscout.models import DiscoveredFeed

_TYPE_LABELS = {"rss": "RSS", "atom": "Atom", "json": "JSON Feed"}


class ConsoleFormatter:
    def __init__(self, width: int = 100):
        self.width = width

    def format(self, feeds: List[DiscoveredFeed], url: str = "") -> str:
        # Live output goes nowhere; the recorded text is returned instead
        console = Console(record=True, width=self.width, file=io.StringIO())
        where = f" on {escape(url)}" if url else ""
        console.print(Panel(f"[bold cyan]🔍 feedscout[/] — {len(feeds)} feed(s){where}", expand=False))

        for i, f in enumerate(feeds, 1):
            console.print(f"\n[bold white]{i}. {escape(f.title)}[/]")
            console.print(f"   [dim]📡 {_TYPE_LABELS.get(f.type, f.type)}[/]")
            console.print(f"   [blue underline]{escape(f.url)}[/]")
            if f.icon_url:
                console.print(f"   [dim]🖼  {escape(f.icon_url)}[/]")
            if f.description:
                console.print(f"   [dim italic]{escape(f.description[:150])}[/]")

        return console.export_text()


class JSONFormatter:
    def __init__(self, indent: Optional[int] = 2):
        self.indent = indent

    def format(self, feeds: List[DiscoveredFeed], url: str = "") -> str:
        return json.dumps([f.to_dict() for f in feeds], indent=self.indent, ensure_ascii=False)


class URLFormatter:
    def format(self, feeds: List[DiscoveredFeed], url: str = "") -> str:
        return "\n".join(f.url for f in feeds)


FORMATTERS = {
    "console": ConsoleFormatter,
    "json": JSONFormatter,
    "urls": URLFormatter,
}
