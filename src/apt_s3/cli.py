"""CLI entry point for the APT S3 method.

APT runs methods from ``/usr/lib/apt/methods/<scheme>``; packagers install
this entry point there as ``s3``.
"""

import argparse
import asyncio
import functools
import logging
import os
import platform
import stat
import sys
from pathlib import Path

from apt_s3.config import MethodConfig, load_config
from apt_s3.logging_config import configure_logging
from apt_s3.method import Method
from apt_s3.storage.s3 import S3ObjectStore

VERSION = "1.0.0"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Argument list to parse. Defaults to sys.argv[1:].

    Returns:
        Parsed argument namespace.
    """
    parser = argparse.ArgumentParser(
        prog="apt-s3",
        description="APT transport method for repositories hosted in Amazon S3",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (optional)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config, default: WARNING)",
    )
    parser.add_argument(
        "--log-format",
        type=str,
        default=None,
        choices=["text", "json"],
        help="Log format: 'text' (human-readable) or 'json' (structured)",
    )
    return parser.parse_args(argv)


async def run_method(config: MethodConfig) -> int:
    """Run the method on this process's stdin and stdout.

    Returns:
        The method's exit status.
    """
    reader = asyncio.StreamReader()
    if stat.S_ISREG(os.fstat(sys.stdin.fileno()).st_mode):
        # Pipe transports reject regular files, so read redirected input whole.
        reader.feed_data(await asyncio.to_thread(sys.stdin.buffer.read))
        reader.feed_eof()
    else:
        loop = asyncio.get_running_loop()
        await loop.connect_read_pipe(
            lambda: asyncio.StreamReaderProtocol(reader), sys.stdin
        )
    method = Method(
        reader,
        sys.stdout,
        store_factory=functools.partial(
            S3ObjectStore, chunk_size=config.transfer.chunk_size
        ),
    )
    return await method.run()


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the APT S3 method.

    Args:
        argv: Argument list to parse. Defaults to sys.argv[1:].
    """
    args = parse_args(argv)

    if args.version:
        print(f"apt-s3 {VERSION} (Python {platform.python_version()})")
        sys.exit(0)

    # Use a basic stderr logger for config-loading errors
    logging.basicConfig(level=logging.WARNING, stream=sys.stderr)
    logger = logging.getLogger("apt_s3")

    config = MethodConfig()
    if args.config is not None:
        try:
            config = load_config(args.config)
        except FileNotFoundError:
            logger.error("Config file not found: %s", args.config)
            sys.exit(1)
        except Exception as exc:
            logger.error("Failed to load config: %s", exc)
            sys.exit(1)

    # Apply CLI overrides
    if args.log_level is not None:
        config.logging.level = args.log_level
    if args.log_format is not None:
        config.logging.format = args.log_format

    configure_logging(level=config.logging.level, fmt=config.logging.format)

    sys.exit(asyncio.run(run_method(config)))


if __name__ == "__main__":
    main()
