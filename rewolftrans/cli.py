"""Command line interface for ReWolf Trans."""

from __future__ import annotations

import argparse
import logging
import pathlib
import sys
from typing import Iterable, Optional, Sequence

from .configuration import get_settings, resolve_codec_options
from .errors import ConfigurationError, OverwriteRefusedError, RewolfTransError
from .game import PatchRunner
from .structures import CodecOptions, RunSummary

log = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rewolf-trans",
        description=(
            "Extract translatable strings from WolfRPG games and patch data files "
            "after translation."
        ),
    )
    parser.add_argument(
        "-r",
        "--root",
        required=True,
        help="Game root directory (where Game.exe lives).",
    )
    parser.add_argument(
        "-p",
        "--patch",
        required=True,
        help="Directory containing patch text files.",
    )
    parser.add_argument(
        "--renc",
        help="Encoding for reading game archive files (default: cp932).",
    )
    parser.add_argument(
        "--wenc",
        help="Encoding for writing translated strings (default: gbk).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Output verbose log.",
    )

    commands = parser.add_subparsers(dest="command", required=True)
    generate = commands.add_parser(
        "generate",
        help="Generate patch files from game archives and source files.",
        description=(
            "Extract translatable strings. Existing patch files are reloaded and then "
            "overwritten, so keep a backup of your work."
        ),
    )
    generate.add_argument(
        "-s",
        "--source",
        action="append",
        default=[],
        metavar="SOURCE_DIR",
        help=(
            "Directory of existing patch files to merge, repeatable. Useful for "
            "upgrading from wolf-trans, though some strings may not be recovered."
        ),
    )
    apply = commands.add_parser(
        "apply",
        help="Apply patched translation to the game.",
        description="Write translated copies of the game data files into an output directory.",
    )
    apply.add_argument(
        "-o",
        "--output",
        required=True,
        metavar="OUT_DIR",
        help="Output directory for patched game files.",
    )
    return parser


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )


def execute_command(
    *,
    command: str,
    game_dir: str,
    patch_dir: str,
    options: CodecOptions,
    source_dirs: Sequence[str] = (),
    output_dir: str | None = None,
) -> tuple[int, RunSummary | None, str | None]:
    """Run one command and return the exit code, summary, and message."""

    runner = PatchRunner(
        game_dir=pathlib.Path(game_dir).expanduser().resolve(),
        patch_dir=pathlib.Path(patch_dir).expanduser().resolve(),
        options=options,
    )

    try:
        if command == "generate":
            summary = runner.generate(
                [pathlib.Path(source).expanduser().resolve() for source in source_dirs]
            )
        else:
            if output_dir is None:
                return 1, None, "An output directory is required to apply patches."
            summary = runner.apply(pathlib.Path(output_dir).expanduser().resolve())
    except FileNotFoundError as exc:
        return 1, None, str(exc)
    except OverwriteRefusedError as exc:
        return 1, None, str(exc)
    except RewolfTransError as exc:
        log.error("Run aborted: %s", exc)
        return 1, None, str(exc)
    except KeyboardInterrupt:
        return 2, None, "Run interrupted by user."

    return 0, summary, None


def print_summary(summary: RunSummary) -> None:
    """Output a short report once processing completes."""

    print(f"\n{summary.operation.capitalize()} complete.")
    print(f"  Game directory:  {summary.game_dir}")
    print(f"  Archives:        {summary.archives}")
    print(f"  Entries:         {summary.entries}")
    print(
        "  Contexts:        "
        f"{summary.translated_contexts} translated / {summary.contexts} total"
    )
    print(f"  Files written:   {summary.files_written}")
    print(f"  Elapsed time:    {summary.elapsed_seconds:.2f} seconds")
    if summary.error_counts:
        print("  Notes:")
        for category, count in summary.error_counts.items():
            print(f"    - {category.lower().replace('_', ' ')}: {count}")


def main(argv: Optional[Iterable[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    try:
        settings = get_settings()
        options = resolve_codec_options(args.renc, args.wenc, settings=settings)
    except ConfigurationError as exc:
        print(exc)
        return 1

    configure_logging(bool(args.verbose or settings.REWOLF_VERBOSE))

    exit_code, summary, message = execute_command(
        command=args.command,
        game_dir=args.root,
        patch_dir=args.patch,
        options=options,
        source_dirs=getattr(args, "source", ()),
        output_dir=getattr(args, "output", None),
    )

    if message:
        print(message)
    if summary:
        print_summary(summary)
    return exit_code


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
