"""logstasher — tail documents from Elasticsearch indices like ``tail -f``."""

import getpass
import logging
import os
import sys
from argparse import ArgumentParser
from dataclasses import replace
from urllib.parse import urlsplit

from logstasher import __version__
from logstasher.client import DEFAULT_PORT, SearchClient, normalize_url
from logstasher.config import (
    DEFAULT_CONFIG_PATH,
    Config,
    load_config,
    load_yaml_config,
    save_yaml_config,
)
from logstasher.errors import ConfigError, LogstasherError
from logstasher.formatter import ResultPrinter
from logstasher.tail import Tail
from logstasher.tunnel import SSHTunnel, parse_tunnel_spec

logger = logging.getLogger(__name__)


def build_parser() -> ArgumentParser:
    """Build the CLI argument parser."""
    parser = ArgumentParser(
        prog="logstasher",
        description="Tail and search documents stored in Elasticsearch indices.",
    )
    parser.add_argument(
        "terms",
        nargs="*",
        help="Query string terms, joined with AND by the search engine",
    )
    parser.add_argument("--url", help="Elasticsearch URL (default: http://127.0.0.1:9200)")
    parser.add_argument(
        "-i", "--index-pattern",
        help="Regular expression selecting the indices to search",
    )
    parser.add_argument(
        "-t", "--timestamp-field",
        help="Timestamp field used for sorting and filtering (default: @timestamp)",
    )
    parser.add_argument(
        "-f", "--format",
        help="Output template, fields referenced as %%field.path (default: %%message)",
    )
    parser.add_argument(
        "-n", "--initial-entries",
        type=int,
        help="Number of entries printed before following (default: 50)",
    )
    parser.add_argument(
        "--follow-page-size",
        type=int,
        help="Maximum entries fetched per poll while following (default: 9000)",
    )
    parser.add_argument(
        "-l", "--list-only",
        action="store_true",
        help="Print the initial entries and exit instead of following",
    )
    parser.add_argument("-a", "--after", help="Only entries at or after this date (YYYY-MM-DD)")
    parser.add_argument("-b", "--before", help="Only entries before this date (YYYY-MM-DD)")
    parser.add_argument("-u", "--user", help="Username for HTTP basic auth, password is prompted")
    parser.add_argument(
        "-s", "--ssh",
        help="Reach Elasticsearch through an SSH tunnel: [local_port:]user@host[:port]",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Increase log verbosity (-v info, -vv debug)")
    parser.add_argument("--trace", action="store_true",
                        help="Log every request and response sent to Elasticsearch")
    parser.add_argument("--no-color", action="store_true", help="Disable ANSI colors")
    parser.add_argument("--config", help=f"Settings file (default: {DEFAULT_CONFIG_PATH})")
    parser.add_argument("--save", action="store_true",
                        help="Save connection and format settings as the new defaults")
    parser.add_argument("--save-query", action="store_true",
                        help="Also save the query terms, replacing the saved query")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def setup_logging(verbosity: int, trace: bool = False) -> None:
    if verbosity >= 2 or trace:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def read_password(user: str) -> str:
    password = os.environ.get("LOGSTASHER_PASSWORD")
    if password is not None:
        return password
    return getpass.getpass(f"Enter password for {user}: ")


def start_tunnel(config: Config) -> SSHTunnel:
    """Open the SSH tunnel and wait until its local port accepts connections."""
    remote = urlsplit(normalize_url(config.search_target.url))
    try:
        remote_port = remote.port or DEFAULT_PORT
    except ValueError as exc:
        raise ConfigError(f"Invalid port in url {config.search_target.url!r}: {exc}") from exc
    tunnel = SSHTunnel(
        parse_tunnel_spec(config.ssh_tunnel),
        remote.hostname or "localhost",
        remote_port,
    )
    tunnel.start()
    try:
        tunnel.wait_ready()
    except LogstasherError:
        tunnel.stop()
        raise
    return tunnel


def run(args) -> None:
    """Wire the components together and tail until interrupted."""
    config_path = args.config or DEFAULT_CONFIG_PATH
    config = load_config(args, load_yaml_config(config_path))
    logger.info("Connecting to %s", config.search_target.url)

    if config.user:
        config = replace(config, password=read_password(config.user))

    tunnel = None
    if config.ssh_tunnel:
        tunnel = start_tunnel(config)
        config = replace(
            config,
            search_target=replace(config.search_target, tunnel_url=tunnel.local_url),
        )

    client = SearchClient(config.effective_url, config.user, config.password,
                          trace=config.trace_requests)
    try:
        printer = ResultPrinter(config.query_definition.format, color=config.color)
        tail = Tail(client, config, printer)
        if args.save or args.save_query:
            save_yaml_config(config_path, config, save_query=args.save_query)
        tail.start(follow=not config.list_only)
        logger.info("Printed %d entries", printer.printed)
    finally:
        client.close()
        if tunnel:
            tunnel.stop()


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_intermixed_args(argv)
    setup_logging(args.verbose, args.trace)
    try:
        run(args)
    except LogstasherError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        sys.exit(0)
    except BrokenPipeError:
        sys.exit(0)


if __name__ == "__main__":
    main()
