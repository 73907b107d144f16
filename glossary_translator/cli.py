"""Command-line interface: translate, usage check and glossary housekeeping."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional

from glossary_translator import config as app_config
from glossary_translator.logger import get_logger
from glossary_translator.api.client import DeepLClient, fetch_usage
from glossary_translator.api.exceptions import ConfigurationError, TranslationError
from glossary_translator.session import run_session_sync

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_STEP_FAILED = 1
EXIT_CONFIG_ERROR = 2
EXIT_INTERRUPTED = 130


def err(s: str) -> None:
    print(s, file=sys.stderr)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="glossary-translator",
        description="Translate text with DeepL using a temporary glossary.",
    )
    ap.add_argument("--config", metavar="PATH", help="config file (default: config/config.json)")
    ap.add_argument("--plan", choices=["free", "pro"], help="DeepL API plan (selects the host)")
    sub = ap.add_subparsers(dest="command")

    tr = sub.add_parser("translate", help="translate TEXT ('-' reads stdin)")
    tr.add_argument("text")
    tr.add_argument("--source", metavar="LANG", help="source language, e.g. JA")
    tr.add_argument("--target", metavar="LANG", help="target language, e.g. EN-GB")
    tr.add_argument("--glossary", metavar="FILE", help="glossary CSV file")
    tr.add_argument("--glossary-name", metavar="NAME", help="name prefix of the temporary glossary")
    tr.add_argument(
        "--back-translate",
        dest="back_translate",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="also translate the result back into the source language",
    )
    tr.add_argument("--json", action="store_true", help="print the full result as JSON")

    sub.add_parser("usage", help="show character usage for the billing period")

    gl = sub.add_parser("glossaries", help="list or delete glossaries on the account")
    gl_sub = gl.add_subparsers(dest="glossary_command")
    gl_sub.add_parser("list", help="list glossaries")
    gl_del = gl_sub.add_parser("delete", help="delete a glossary by id")
    gl_del.add_argument("glossary_id")

    return ap


def load_session_config(args: argparse.Namespace) -> app_config.SessionConfig:
    config = app_config.load_config(path=_config_path(args))
    if args.plan:
        config["deepl"]["plan"] = args.plan
    return app_config.get_session_config(config)


def _config_path(args: argparse.Namespace):
    return Path(args.config) if args.config else None


def cmd_translate(args: argparse.Namespace) -> int:
    session_config = load_session_config(args).with_overrides(
        source_lang=args.source,
        target_lang=args.target,
        glossary_file=args.glossary,
        glossary_name=args.glossary_name,
    )
    text = sys.stdin.read() if args.text == "-" else args.text

    result = run_session_sync(text, session_config, back_translate=args.back_translate)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    else:
        print(result.translation.text)
        if result.back_translation:
            print(f"[{session_config.source_lang}] {result.back_translation.text}")
    for warning in result.warnings:
        err(f"warning: {warning}")
    return EXIT_OK


def cmd_usage(args: argparse.Namespace) -> int:
    session_config = load_session_config(args)
    usage = asyncio.run(fetch_usage(session_config.credentials, timeout=session_config.timeout))
    percent = (usage.character_count / usage.character_limit * 100) if usage.character_limit else 0.0
    print(f"Characters used: {usage.character_count} / {usage.character_limit} ({percent:.1f}%)")
    print(f"Remaining: {usage.remaining}")
    return EXIT_OK


async def _glossaries(session_config: app_config.SessionConfig, delete_id: Optional[str] = None):
    async with DeepLClient(session_config.credentials, timeout=session_config.timeout) as client:
        if delete_id:
            await client.delete_glossary(delete_id)
            return []
        return await client.list_glossaries()


def cmd_glossaries(args: argparse.Namespace) -> int:
    session_config = load_session_config(args)
    if args.glossary_command == "delete":
        asyncio.run(_glossaries(session_config, delete_id=args.glossary_id))
        print(f"Deleted {args.glossary_id}")
        return EXIT_OK

    glossaries = asyncio.run(_glossaries(session_config))
    if not glossaries:
        print("No glossaries")
    for g in glossaries:
        created = g.creation_time.isoformat(timespec="seconds") if g.creation_time else "-"
        print(f"{g.glossary_id}\t{g.name}\t{g.source_lang}->{g.target_lang}\t{g.entry_count} entries\t{created}")
    return EXIT_OK


COMMANDS = {
    "translate": cmd_translate,
    "usage": cmd_usage,
    "glossaries": cmd_glossaries,
}


def main(argv: Optional[List[str]] = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)
    if not args.command:
        ap.print_help()
        return EXIT_CONFIG_ERROR

    app_config.initialize_app()
    logger.debug(f"Running command: {args.command}")

    try:
        return COMMANDS[args.command](args)
    except ConfigurationError as e:
        err(f"configuration error: {e}")
        return EXIT_CONFIG_ERROR
    except ValueError as e:
        err(f"error: {e}")
        return EXIT_CONFIG_ERROR
    except TranslationError as e:
        # str(e) starts with the failed step, e.g. "translate failed: ..."
        err(f"error: {e}")
        return EXIT_STEP_FAILED
    except KeyboardInterrupt:
        err("interrupted")
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
