"""Dispatcher for ``python -m hyper_kg <subcommand> [args…]``.

Subcommands
-----------
analyze   Analyze a path and print the report
query     Analyze a path and run one query
viz       Analyze a path and write an HTML graph view
mcp       Start the MCP server
"""

import sys

_COMMANDS: dict[str, str] = {
    "analyze": "hyper_kg.hyperkg_analyze",
    "query": "hyper_kg.hyperkg_query",
    "viz": "hyper_kg.viz",
    "mcp": "hyper_kg.mcp_server",
}

_HELP = """\
usage: python -m hyper_kg <subcommand> [options]

subcommands:
  analyze   Analyze a path and print the report
  query     Analyze a path and run one query
  viz       Analyze a path and write an HTML graph view
  mcp       Start the MCP server

Run  python -m hyper_kg <subcommand> --help  for per-command options.
"""


def main() -> None:
    if len(sys.argv) < 2 or sys.argv[1] in ("-h", "--help"):
        print(_HELP, end="")
        sys.exit(0)

    subcommand = sys.argv[1]
    if subcommand not in _COMMANDS:
        print(f"error: unknown subcommand '{subcommand}'\n", file=sys.stderr)
        print(_HELP, end="", file=sys.stderr)
        sys.exit(1)

    # the target module's argparse sees: ["python -m hyper_kg analyze", "src/"]
    sys.argv = [f"python -m hyper_kg {subcommand}", *sys.argv[2:]]

    import importlib

    mod = importlib.import_module(_COMMANDS[subcommand])
    mod.main()


if __name__ == "__main__":
    main()
