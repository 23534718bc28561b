"""
helixbuild CLI
Build, run and install the helix demo on Linux and Windows

Usage: helixbuild [OPTIONS] [--config PATH]

Options are independent switches and may be combined freely; they always
execute in the order clean, compile, run, install, uninstall.
"""
import sys
from typing import List, Optional, Set, Tuple

from .config import load_config, validate_config
from .errors import HelixBuildError
from .pipeline import BuildContext, build_pipeline, run_pipeline

FLAG_ALIASES = {
    "help": ("-help", "--help", "help", "-h", "h"),
    "compile": ("-compile", "--compile", "compile", "-c", "c"),
    "run": ("-run", "--run", "run", "-r", "r"),
    "clean": ("-clean", "--clean", "clean", "-cl", "cl"),
    "install": ("-install", "--install", "install", "-i", "i"),
    "uninstall": ("-uninstall", "--uninstall", "uninstall", "-un", "un"),
}
_ALIAS_TO_FLAG = {alias: flag for flag, aliases in FLAG_ALIASES.items() for alias in aliases}


class UsageError(ValueError):
    """Invalid command line"""


def parse_args(argv: List[str]) -> Tuple[Set[str], Optional[str]]:
    """Return the requested flags and the --config path, if any"""
    flags = set()
    config_path = None

    # If invoked via `uv run <cmd> -- --arg ...` the runner may forward a leading '--'
    if argv and argv[0] == "--":
        argv = argv[1:]

    i = 0
    while i < len(argv):
        arg = argv[i]
        if arg in ("--config", "-config"):
            if i + 1 >= len(argv):
                raise UsageError(f"{arg} requires a path")
            config_path = argv[i + 1]
            i += 2
            continue
        if arg.startswith("--config="):
            config_path = arg.split("=", 1)[1]
        elif arg in _ALIAS_TO_FLAG:
            flags.add(_ALIAS_TO_FLAG[arg])
        else:
            raise UsageError(f"Invalid option: {arg}")
        i += 1

    return flags, config_path


def print_help():
    """Print help information for the helixbuild command"""
    help_text = """
USAGE:
  helixbuild [OPTIONS] [--config PATH]

OPTIONS:
  -help, -h           Display this help message and exit.
  -compile, -c        Install missing tools, build the vendored libraries
                      and compile the executable.
  -run, -r            Run the executable.
  -clean, -cl         Remove build output, staged assets and extracted
                      library sources.
  -install, -i        Install system-wide.
  -uninstall, -un     Uninstall.
  --config PATH       Use this helix.toml instead of searching for one.

Options run in the order clean, compile, run, install, uninstall no matter
how they are given. The first failure stops the remaining operations.

EXAMPLES:
  $ helixbuild -help
  $ helixbuild -c -r
  $ helixbuild -c -i -cl
"""
    print(help_text)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the helixbuild command"""
    argv = sys.argv[1:] if argv is None else argv

    try:
        flags, config_path = parse_args(argv)
    except UsageError as e:
        print(f"[ERROR] {e}")
        print_help()
        return 1

    if "help" in flags or not flags:
        print_help()
        return 0

    try:
        config = load_config(config_path)
        for warning in validate_config(config):
            print(f"[WARN] {warning}")
        ctx = BuildContext.create(config)
    except HelixBuildError as e:
        print(f"[ERROR] {e}")
        return 1

    return run_pipeline(build_pipeline(flags, ctx))


def entry_point():
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nBuild interrupted by user")
        sys.exit(1)


if __name__ == "__main__":
    entry_point()
