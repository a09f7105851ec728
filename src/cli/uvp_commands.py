"""CLI commands for managing feeds, the catalog and playback.

Provides commands for:
- Subscribing to YouTube, Mediathek or custom feeds
- Refreshing feeds
- Listing feeds, available and active items
- Playing an item with mpv
- Removing feeds and items
- Serving the catalog over HTTP
"""

import logging
import sys

from ..argparse_shared import (
    add_log_level_argument,
    add_title_argument,
    add_url_argument,
    get_base_parser,
)
from ..config import Config
from ..db.factory import create_store_from_config
from ..db.repository import StoreError
from ..feeds.sources import custom_feed, mediathek_feed, youtube_feed
from ..playback.session import PlaybackError, PlaybackSession

logger = logging.getLogger(__name__)


def add_feed(args, config: Config):
    """Subscribe to a feed built from the chosen source."""
    if args.source == "youtube":
        feed = youtube_feed(args.channel_name, channel_id=args.channel_id)
    elif args.source == "mediathek":
        feed = mediathek_feed(args.query, title=args.title)
    else:
        feed = custom_feed(args.url, title=args.title)

    store = create_store_from_config(config)
    try:
        if store.add_feed(feed):
            print(f"Added feed: {feed.title} ({feed.url})")
        else:
            print(f"Already subscribed: {feed.url}")
    finally:
        store.close()


def add_video(args, config: Config):
    """Add a url to the active items without playing it."""
    store = create_store_from_config(config)
    try:
        active = store.promote(args.url)
        print(f"Active: {active.title or active.url}")
    finally:
        store.close()


def refresh(args, config: Config):
    """Fetch all feeds and merge their new entries."""
    store = create_store_from_config(config)
    try:
        result = store.refresh()

        print("\nRefresh complete:")
        print(f"  Refreshed: {len(result.refreshed)}")
        print(f"  New items: {result.new_items}")
        print(f"  Failed: {len(result.failed)}")
        for url, error in result.failed.items():
            print(f"    - {url}: {error}")
    finally:
        store.close()


def list_items(args, config: Config):
    """Print feeds, available or active items as a table."""
    store = create_store_from_config(config)
    try:
        if args.what == "feeds":
            print("Title \t| Last Update \t| Url")
            for feed in store.list_feeds():
                last_update = feed.last_update.isoformat() if feed.last_update else "Never"
                print(f"{feed.title} \t| {last_update} \t| {feed.url}")
        elif args.what == "available":
            print("Title \t| Publication \t| Url")
            for item in store.list_available():
                print(f"{item.title} \t| {item.publication.isoformat()} \t| {item.url}")
        else:
            print("Title \t| Url \t| Playback")
            for item in store.list_active():
                duration = f"/{item.duration_secs:.0f}" if item.duration_secs is not None else ""
                print(f"{item.title or 'Unknown'} \t| {item.url} \t| {item.position_secs:.0f}{duration}")
    finally:
        store.close()


def play(args, config: Config):
    """Play a url with mpv and save where playback stopped."""
    store = create_store_from_config(config)
    try:
        result = PlaybackSession(store, args.url, mpv_binary=config.MPV_BINARY).run()
        print(f"{result.title or result.url}: {result.state.value}")
    except PlaybackError as e:
        print(f"Error: {e}")
        sys.exit(1)
    finally:
        store.close()


def remove(args, config: Config):
    """Remove a feed, or an item from the available (else active) items."""
    store = create_store_from_config(config)
    try:
        if args.what == "feed":
            removed = store.remove_feed(args.url)
        else:
            removed = store.remove_available(args.url) or store.remove_active(args.url)

        if not removed:
            print(f"Not found: {args.url}")
            sys.exit(1)
        print(f"Removed: {args.url}")
    finally:
        store.close()


def serve(args, config: Config):
    """Serve the local catalog over HTTP."""
    from ..web.app import serve as run_server

    run_server(config, host=args.host, port=args.port)


def create_parser():
    """Create the argument parser for the CLI."""
    parser = get_base_parser()
    add_log_level_argument(parser)

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # add command
    add_parser = subparsers.add_parser("add", help="Add a feed or video")
    add_subparsers = add_parser.add_subparsers(dest="kind", required=True)

    feed_parser = add_subparsers.add_parser("feed", help="Add a feed")
    source_parsers = feed_parser.add_subparsers(dest="source", required=True)

    youtube_parser = source_parsers.add_parser("youtube", help="Add a youtube channel feed")
    youtube_parser.add_argument("channel_name", help="Channel name")
    youtube_parser.add_argument(
        "-i", "--id",
        dest="channel_id",
        help="Fetch using the channel id",
    )

    mediathek_parser = source_parsers.add_parser(
        "mediathek",
        help="Add a query of the German public broadcast multimedia library",
    )
    mediathek_parser.add_argument("query", help="Search query")
    add_title_argument(mediathek_parser, "Assign a title separate from the query")

    other_parser = source_parsers.add_parser("other", help="Add a custom feed via URL")
    add_url_argument(other_parser, "Feed URL")
    add_title_argument(other_parser, "Assign a title other than the URL")

    video_parser = add_subparsers.add_parser("video", help="Add video to the list of active videos")
    add_url_argument(video_parser)

    # refresh command
    subparsers.add_parser("refresh", help="Refresh the list of available videos")

    # list command
    list_parser = subparsers.add_parser("list", help="List feeds, available or active videos")
    list_parser.add_argument("what", choices=["feeds", "available", "active"])

    # play command
    play_parser = subparsers.add_parser("play", help="Play an (external) video")
    add_url_argument(play_parser)

    # remove command
    remove_parser = subparsers.add_parser("remove", help="Remove a feed or video")
    remove_parser.add_argument("what", choices=["feed", "video"])
    add_url_argument(remove_parser)

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Share the local catalog over HTTP")
    serve_parser.add_argument("--host", help="Interface to bind (default: UVP_SERVER_HOST)")
    serve_parser.add_argument("--port", type=int, help="Port to bind (default: UVP_SERVER_PORT)")

    return parser


def main(argv=None):
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # Set the log level for the HTTP client libraries
    # because they are chatty on INFO.
    if args.log_level.upper() == "INFO":
        logging.getLogger("httpx").setLevel("WARNING")
        logging.getLogger("httpcore").setLevel("WARNING")
        logging.getLogger("aiohttp").setLevel("WARNING")

    # Load configuration
    try:
        config = Config(env_file=args.env_file)
    except ValueError as e:
        print(f"Configuration error: {e}")
        sys.exit(1)

    # Route to appropriate command
    if args.command == "add":
        command_func = add_feed if args.kind == "feed" else add_video
    else:
        command_func = {
            "refresh": refresh,
            "list": list_items,
            "play": play,
            "remove": remove,
            "serve": serve,
        }[args.command]

    try:
        command_func(args, config)
    except StoreError as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
