# src/main.py — v1
"""CLI entry point: prompt, chain, compress commands.

Usage:
    pegasus-gateway prompt "<text>" [--model M] [--context FILE]
    pegasus-gateway chain [model]
    pegasus-gateway compress "<text>" | --file FILE
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from pegasus_gateway.version import __version__

if TYPE_CHECKING:
    from pegasus_gateway.config.settings import Settings

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    from pegasus_gateway.config.settings import Settings

    parser = _build_parser()
    args = parser.parse_args(argv)

    settings = Settings()
    _setup_logging(args.verbose, settings)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="pegasus-gateway",
        description=f"pegasus-gateway v{__version__}: resilient LLM request gateway",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- prompt ---
    p_prompt = subparsers.add_parser(
        "prompt", help="Send one prompt through the gateway",
    )
    p_prompt.add_argument("text", help="Prompt text")
    p_prompt.add_argument(
        "-m", "--model", default=None,
        help="Model identifier (default: LLM_DEFAULT_MODEL)",
    )
    p_prompt.add_argument(
        "-c", "--context", type=Path, default=None,
        help="File whose contents are appended to the prompt",
    )
    p_prompt.set_defaults(func=_cmd_prompt)

    # --- chain ---
    p_chain = subparsers.add_parser(
        "chain", help="Show the fallback chain for a model",
    )
    p_chain.add_argument(
        "model", nargs="?", default=None,
        help="Primary model (default: LLM_DEFAULT_MODEL)",
    )
    p_chain.set_defaults(func=_cmd_chain)

    # --- compress ---
    p_compress = subparsers.add_parser(
        "compress", help="Show how a prompt would be compressed",
    )
    source = p_compress.add_mutually_exclusive_group(required=True)
    source.add_argument("text", nargs="?", default=None, help="Prompt text")
    source.add_argument(
        "-f", "--file", type=Path, default=None,
        help="Read the prompt from a file",
    )
    p_compress.set_defaults(func=_cmd_compress)

    return parser


async def _cmd_prompt(args: argparse.Namespace, settings: Settings) -> int:
    """Send a prompt and print the completion."""
    from pegasus_gateway.api.gateway import Gateway

    async with Gateway(settings) as gateway:
        if args.context is not None:
            text = await gateway.process_prompt(
                args.text, context_file=args.context, model=args.model,
            )
        else:
            text = await gateway.process_direct_prompt(args.text, model=args.model)
        stats = gateway.usage_stats()

    print(text)
    logger.info(
        "Completed: %d upstream call(s), %d tokens, %d chars saved by compression",
        stats.upstream_completions, stats.total_tokens, stats.compression_savings,
    )
    return 0


async def _cmd_chain(args: argparse.Namespace, settings: Settings) -> int:
    """Print the fallback chain resolved for a model."""
    from pegasus_gateway.config.models import ModelCatalog
    from pegasus_gateway.resilience.fallback import ModelFallbackResolver

    catalog = ModelCatalog.from_settings(settings)
    resolver = ModelFallbackResolver(catalog, settings.fallback_max_alternates)

    primary = args.model or settings.llm_default_model
    print(f"\nFallback chain for {primary}:")
    for position, model in enumerate(resolver.chain_for(primary), start=1):
        print(f"  {position}. {model} ({catalog.tier_of(model).value})")
    return 0


async def _cmd_compress(args: argparse.Namespace, settings: Settings) -> int:
    """Print the compressed form of a prompt."""
    from pegasus_gateway.prompt.compressor import compress_prompt

    if args.file is not None:
        if not args.file.is_file():
            logger.error("File not found: %s", args.file)
            return 1
        text = args.file.read_text(encoding="utf-8")
    else:
        text = args.text

    result = compress_prompt(text)
    print(result.content)
    print("\nCompression:")
    print(f"  Original:    {result.original_length} chars")
    print(f"  Compressed:  {result.compressed_length} chars")
    print(f"  Saved:       {result.saved_chars} chars ({(1 - result.ratio) * 100:.1f}%)")
    return 0


def _setup_logging(verbose: bool, settings: Settings) -> None:
    """Configure logging for CLI usage from LOG_* settings; -v forces DEBUG."""
    from pegasus_gateway.logging.logger import setup_logging

    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )
    # stdout carries command output
    for handler in logging.getLogger("pegasus_gateway").handlers:
        if isinstance(handler, logging.StreamHandler) and handler.stream is sys.stdout:
            handler.setStream(sys.stderr)
    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)


if __name__ == "__main__":
    sys.exit(main())
