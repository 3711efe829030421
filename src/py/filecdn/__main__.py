import argparse
import sys
from pathlib import Path

from . import config
from .cdn import services
from .config import CDNConfig
from .server import run
from .utils import logging
from .utils.listing import useSystemCollation
from .utils.logging import error, info


def parse(args: list[str] | None = None) -> CDNConfig:
	parser = argparse.ArgumentParser(
		prog="filecdn",
		description="Serves the files of a directory, with JSON metadata and listings",
		formatter_class=argparse.ArgumentDefaultsHelpFormatter,
	)
	parser.add_argument(
		"root",
		nargs="?",
		default=config.ROOT,
		help="Directory holding the files to serve",
	)
	parser.add_argument(
		"-H",
		"--host",
		action="store",
		dest="host",
		default=config.HOST,
		help="Specifies the host to bind to",
	)
	parser.add_argument(
		"-p",
		"--port",
		action="store",
		dest="port",
		type=int,
		default=config.PORT,
		help="Specifies the port",
	)
	parser.add_argument(
		"-u",
		"--public-url",
		action="store",
		dest="publicURL",
		default=config.PUBLIC_URL,
		help="Prefix of the URLs returned in listings",
	)
	parser.add_argument(
		"-d",
		"--depth",
		action="store",
		dest="depth",
		type=int,
		default=config.WALK_DEPTH,
		help="Maximum depth of the index page walk",
	)
	parser.add_argument(
		"-q",
		"--quiet",
		action="store_true",
		dest="quiet",
		help="Does not log requests",
	)
	parser.add_argument(
		"-l",
		"--log-level",
		action="store",
		dest="logLevel",
		default=config.LOG_LEVEL,
		choices=("debug", "info", "warning", "error", "exception"),
		help="Minimum level of the logged messages",
	)
	opts = parser.parse_args(args)
	return CDNConfig(
		root=Path(opts.root),
		host=opts.host,
		port=opts.port,
		publicURL=opts.publicURL,
		depth=opts.depth,
		logRequests=config.LOG_REQUESTS and not opts.quiet,
		logLevel=opts.logLevel,
	)


def main(args: list[str] | None = None) -> int:
	cdn = parse(args)
	logging.configure(cdn.logLevel)
	useSystemCollation()
	if not cdn.root.is_dir():
		error("Root is not a directory", "ROOTERR", Root=str(cdn.root))
		return 1
	info("Starting file CDN", Root=str(cdn.root.resolve()))
	run(
		*services(cdn),
		host=cdn.host,
		port=cdn.port,
		logRequests=cdn.logRequests,
	)
	return 0


if __name__ == "__main__":
	sys.exit(main())

# EOF
