"""CLI entry point for ai-readline."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from aireadline.config import AIReadlineConfig
from aireadline.errors import ConfigError, InitializationError
from aireadline.history import ListHistory
from aireadline.llm import AISession


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )


def _load_config(args: argparse.Namespace) -> AIReadlineConfig:
    """Load config, exiting with a message if it is invalid."""
    path = Path(args.config) if getattr(args, "config", None) else None
    try:
        config = AIReadlineConfig.load(path)
    except ConfigError as e:
        print(f"ai-readline: {e}", file=sys.stderr)
        sys.exit(1)
    if getattr(args, "verbose", False):
        config.verbose = True
    _setup_logging(config.verbose)
    return config


def _open_session(config: AIReadlineConfig, program: str | None) -> AISession:
    try:
        return AISession.create(config, program_name=program)
    except InitializationError as e:
        print(f"ai-readline: {e}", file=sys.stderr)
        sys.exit(1)


def _read_history_file(path: str) -> ListHistory:
    """Read past input lines, exiting with a message if the file is unreadable."""
    try:
        text = Path(path).expanduser().read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        print(f"ai-readline: cannot read history file: {e}", file=sys.stderr)
        sys.exit(1)
    return ListHistory(line for line in text.splitlines() if line.strip())


def _cmd_suggest(args: argparse.Namespace) -> None:
    """Handle `ai-readline suggest <prompt>`."""
    config = _load_config(args)
    history = _read_history_file(args.history_file) if args.history_file else None

    with _open_session(config, args.program) as session:
        result = session.fetch(args.prompt, history)

    if not result.ok:
        print(f"ai-readline: {result.error}", file=sys.stderr)
        sys.exit(1)
    if not result.suggestion:
        print("ai-readline: no suggestion", file=sys.stderr)
        return
    print(result.suggestion)


def _cmd_shell(args: argparse.Namespace) -> None:
    """Handle `ai-readline shell`: line editing with AI Tab completion."""
    import readline

    from aireadline.completer import install

    config = _load_config(args)
    with _open_session(config, args.program) as session:
        install(session, readline)
        while True:
            try:
                line = input(f"{session.program_name}> ")
            except EOFError:
                print()
                break
            except KeyboardInterrupt:
                print()
                continue
            if line.strip() in ("exit", "quit"):
                break
            # input() has already appended the line to readline history
            print(line)


def _cmd_shots(args: argparse.Namespace) -> None:
    """Handle `ai-readline shots`."""
    config = _load_config(args)
    if not config.shots:
        print("  no shots configured")
        return
    for name, shot_set in config.shots.items():
        count = len(shot_set.shots)
        print(f"  {name:<16} {count} shot{'s' if count != 1 else ''}")


def _cmd_config(args: argparse.Namespace) -> None:
    """Handle `ai-readline config`."""
    config = _load_config(args)
    print(f"  config:       {config.config_path}")
    print(f"  endpoint:     {config.provider.endpoint}")
    print(f"  api_key:      {config.masked_api_key() or '(not set)'}")
    print(f"  model:        {config.provider.model}")
    print(f"  temperature:  {config.provider.temperature}")
    print(f"  timeout:      {config.provider.timeout}s")
    print(f"  context:      {config.prompt.context}")
    print(f"  redact:       {config.prompt.redact_history}")


HELP_TEXT = """\
  ai-readline: AI suggestions for line-editing sessions

  Commands:
    ai-readline suggest <prompt>   Print a suggested completion for <prompt>
    ai-readline shell              Edit lines with Tab asking the model to complete
    ai-readline shots              List programs with n-shot examples
    ai-readline config             Show effective settings
    ai-readline help               This screen

  Run `ai-readline help <command>` for details on any command.
"""

HELP_COMMANDS: dict[str, str] = {
    "suggest": (
        "  ai-readline suggest <prompt> [--program NAME] [--history-file FILE]\n\n"
        "  Send <prompt> with the program's n-shot examples and recent history\n"
        "  lines from FILE, and print the suggested completion."
    ),
    "shell": (
        "  ai-readline shell [--program NAME]\n\n"
        "  Read lines with readline. Tab sends the current line to the model\n"
        "  and replaces it with the suggestion. Accepted lines are echoed."
    ),
    "shots": "  ai-readline shots\n\n  List programs that have n-shot examples configured.",
    "config": (
        "  ai-readline config\n\n"
        "  Show settings from ~/.config/ai-readline/config.toml (API key masked)."
    ),
}


def _cmd_help(args: argparse.Namespace) -> None:
    """Handle `ai-readline help [command]`."""
    command = getattr(args, "help_command", None)
    if command and command in HELP_COMMANDS:
        print(HELP_COMMANDS[command])
    elif command:
        print(f"  ai-readline: unknown command '{command}'")
        print("  Run `ai-readline help` to see all commands.")
    else:
        print(HELP_TEXT)


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="ai-readline",
        description="AI suggestions for line-editing sessions",
    )
    parser.add_argument("--config", help="Config file path")
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Log requests and responses"
    )
    subparsers = parser.add_subparsers(dest="command")

    # suggest
    sp = subparsers.add_parser("suggest", help="Print a suggestion for a prompt")
    sp.add_argument("prompt", help="Partial input line")
    sp.add_argument("--program", help="Program name used for shots and system role")
    sp.add_argument("--history-file", help="File of past input lines, oldest first")
    sp.set_defaults(func=_cmd_suggest)

    # shell
    sp = subparsers.add_parser("shell", help="Interactive line editing with AI completion")
    sp.add_argument("--program", help="Program name used for shots and system role")
    sp.set_defaults(func=_cmd_shell)

    # shots
    sp = subparsers.add_parser("shots", help="List configured n-shot programs")
    sp.set_defaults(func=_cmd_shots)

    # config
    sp = subparsers.add_parser("config", help="Show effective settings")
    sp.set_defaults(func=_cmd_config)

    # help
    sp = subparsers.add_parser("help", help="Show help")
    sp.add_argument("help_command", nargs="?", default=None, help="Command to get help for")
    sp.set_defaults(func=_cmd_help)

    args = parser.parse_args(argv)

    if not args.command:
        _cmd_help(argparse.Namespace(help_command=None))
        sys.exit(0)

    args.func(args)


if __name__ == "__main__":
    main()
