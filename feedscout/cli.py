"""CLI entry point for feedscout."""
import argparse
import logging
import sys

from feedscout import __version__
from feedscout.api import discover_feeds
from feedscout.context import DEFAULT_MAX_WORKERS
from feedscout.formatters import FORMATTERS
from feedscout.http import FEED_TIMEOUT, METADATA_TIMEOUT, PAGE_TIMEOUT
from feedscout.registry import SERVICES
from feedscout.telemetry import LoggingTelemetry


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="feedscout",
        description="🔍 feedscout — find the RSS, Atom and JSON feeds behind any URL",
    )
    parser.add_argument("url", nargs="?", default=None,
                        help="Website, blog, subreddit or Apple Podcasts page to inspect")
    parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-f", "--format", choices=sorted(FORMATTERS), default="console",
                        help="Output format (default: console)")
    parser.add_argument("-o", "--output", type=str, default=None,
                        help="Write output to file instead of stdout")
    parser.add_argument("--timeout", type=float, default=FEED_TIMEOUT,
                        help=f"Per-feed validation deadline in seconds (default: {FEED_TIMEOUT:g})")
    parser.add_argument("--page-timeout", type=float, default=PAGE_TIMEOUT, dest="page_timeout",
                        help=f"HTML page and lookup deadline in seconds (default: {PAGE_TIMEOUT:g})")
    parser.add_argument("--metadata-timeout", type=float, default=METADATA_TIMEOUT, dest="metadata_timeout",
                        help=f"Icon lookup deadline in seconds (default: {METADATA_TIMEOUT:g})")
    parser.add_argument("--workers", type=int, default=DEFAULT_MAX_WORKERS,
                        help=f"Max parallel probes (default: {DEFAULT_MAX_WORKERS})")
    for entry in SERVICES:
        if entry.key == "standard":
            continue
        parser.add_argument(f"--no-{entry.key}", action="store_true", dest=entry.flag_name,
                            help=f"Skip {entry.display_name} discovery")
    parser.add_argument("--strict", action="store_true",
                        help="Exit with status 1 when no feeds are found")
    parser.add_argument("--no-config", action="store_true",
                        help="Ignore config files (~/.feedscout.yaml, ./feedscout.yaml)")
    parser.add_argument("--init-config", action="store_true",
                        help="Write a starter ~/.feedscout.yaml and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging and tracing")
    parser.add_argument("-q", "--quiet", action="store_true", help="Suppress status messages on stderr")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    # Apply config file defaults (CLI args always win)
    if not args.no_config:
        from feedscout.config import apply_config_defaults
        args = apply_config_defaults(parser, args)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.init_config:
        from feedscout.config import generate_starter_config
        path = generate_starter_config()
        print(f"✅ Wrote starter config to {path}")
        return

    if not args.url:
        parser.error("a URL is required")

    disabled = {entry.key for entry in SERVICES if getattr(args, entry.flag_name, False)}

    if not args.quiet:
        print(f"🔍 Looking for feeds on {args.url}...", file=sys.stderr)

    feeds = discover_feeds(
        args.url,
        telemetry=LoggingTelemetry() if args.verbose else None,
        disabled=disabled,
        timeout=args.timeout,
        page_timeout=args.page_timeout,
        metadata_timeout=args.metadata_timeout,
        max_workers=args.workers,
    )

    if not feeds:
        print(f"❌ No feeds found on {args.url}", file=sys.stderr)
        if args.strict:
            sys.exit(1)
        return

    output = FORMATTERS[args.format]().format(feeds, url=args.url)

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(output)
        if not args.quiet:
            print(f"✅ Wrote {len(feeds)} feed(s) to {args.output}", file=sys.stderr)
    else:
        print(output)


if __name__ == "__main__":
    main()
