"""Argument parsing functionality for chunkwise."""

import argparse
from constants import Constants

def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="chunkwise",
        description=(
            "chunkwise - framework chunk partitioning, artifact naming and build cache policy"
        ),
        add_help=True,
    )

    parser.add_argument("-m", "--mode",
                        dest="MODE",
                        help="Build mode. Defaults to NODE_ENV (production or development).",
                        action="store", type=str.lower,
                        choices=Constants.SUPPORTED_MODES)
    parser.add_argument("-r", "--root",
                        dest="ROOT",
                        help="Project root the framework packages are resolved from (default: .)",
                        action="store",
                        type=str)
    parser.add_argument("-f", "--framework",
                        dest="FRAMEWORK",
                        help="Framework package name; repeat for several (default: react, react-dom)",
                        action="append",
                        type=str)
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML, YML, or JSON)",
                        action="store",
                        type=str)
    parser.add_argument("-o", "--output",
                        dest="OUTPUT",
                        help="Write the build configuration JSON to this file instead of stdout",
                        action="store",
                        type=str)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str.upper,
                        choices=Constants.LOG_LEVELS,
                        default=None)
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("-q", "--quiet",
                        dest="QUIET",
                        help="Do not print the configuration to the console.",
                        action="store_true")

    return parser.parse_args(argv)
