import argparse

def get_base_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Follow video feeds and resume playback with mpv")
    parser.add_argument("-e", "--env-file", help="Path to a custom .env file", default=None)
    return parser

def add_log_level_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-l", "--log-level", help="Set log level (DEBUG, INFO, WARNING, ERROR)", default="INFO")

def add_url_argument(parser: argparse.ArgumentParser, help: str = "Url") -> None:
    parser.add_argument("url", help=help)

def add_title_argument(parser: argparse.ArgumentParser, help: str) -> None:
    parser.add_argument("-t", "--title", help=help, default=None)
