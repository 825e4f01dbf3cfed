"""chunkwise - configuration-time build planning for a web bundler.

Computes the framework dependency closure, the split-chunk rules, the output
naming templates and the persistent cache policy, and emits them as JSON.

    Returns:
        int: Exit code
"""
import json
import logging
import sys

from args import parse_args
from bundling.config import build_configuration
from cli_config import resolve_options
from common.errors import ConfigurationError
from common.logging_utils import add_file_handler, configure_logging, extra_context, is_debug_enabled
from constants import ExitCodes


def export_json(configuration, path):
    """Exports the build configuration to a JSON file.

    Args:
        configuration (dict): JSON-safe build configuration.
        path (str): File path to export the JSON.
    """
    try:
        with open(path, 'w', encoding='utf-8') as file:
            json.dump(configuration, file, ensure_ascii=False, indent=2)
        logging.info("JSON file has been successfully exported at: %s", path)
    except OSError as e:
        logging.error("Error writing JSON to %s: %s", path, e)
        sys.exit(ExitCodes.FILE_ERROR.value)


def main(argv=None):
    """Main function of the program."""
    logger = logging.getLogger(__name__)

    args = parse_args(argv)
    configure_logging(args.LOG_LEVEL)
    if args.LOG_FILE:
        try:
            add_file_handler(args.LOG_FILE)
        except OSError as e:
            logging.error("Cannot open log file %s: %s", args.LOG_FILE, e)
            sys.exit(ExitCodes.FILE_ERROR.value)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action="main")
        )

    try:
        options = resolve_options(args)
        configuration = build_configuration(options)
    except ConfigurationError as e:
        logging.error("Configuration error: %s", e)
        sys.exit(ExitCodes.CONFIG_ERROR.value)

    payload = configuration.to_dict()
    if args.OUTPUT:
        export_json(payload, args.OUTPUT)
    elif not args.QUIET:
        print(json.dumps(payload, indent=2))

    if is_debug_enabled(logger):
        logger.debug(
            "CLI finished",
            extra=extra_context(event="function_exit", component="cli", action="main", outcome="success")
        )
    sys.exit(ExitCodes.SUCCESS.value)

if __name__ == "__main__":
    main()
