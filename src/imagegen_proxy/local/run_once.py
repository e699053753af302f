"""Run a single generation through the proxy handler from the shell.

Uses the same settings, retry policy and result mapping as the HTTP endpoint,
then prints the JSON body that a caller would receive.
"""
from __future__ import annotations
import argparse
import asyncio
import json
import logging
import os
from dataclasses import replace

from imagegen_proxy.common.logging_setup import setup_logging
from imagegen_proxy.common.options import VARIANTS, resolve_options
from imagegen_proxy.common.schema import ProxyResult
from imagegen_proxy.common.settings import Settings
from imagegen_proxy.serve.handler import FORWARD_METHOD, ImageGenerationHandler

LOGGER = logging.getLogger("imagegen_proxy.local.run_once")

def run_once(prompt: str, settings: Settings) -> ProxyResult:
    """
    Send one prompt through the handler.

    Args:
        prompt: User prompt.
        settings: Proxy settings (credential included).
    """
    handler = ImageGenerationHandler(settings)
    return asyncio.run(handler.handle(FORWARD_METHOD, {"prompt": prompt}))

def main(argv: list[str] | None = None) -> int:
    setup_logging()
    ap = argparse.ArgumentParser(description="Generate one image via the upstream API")
    ap.add_argument("--prompt", required=True, help="Text prompt")
    ap.add_argument("--variant", choices=sorted(VARIANTS), default=None, help="Generation preset")
    ap.add_argument("--options", default=None, help="YAML overrides for the preset")
    ap.add_argument("--max-retries", type=int, default=None)
    args = ap.parse_args(argv)

    settings = Settings.from_env()
    if args.variant or args.options:
        variant = args.variant or settings.variant
        options_path = args.options or os.getenv("GENERATION_OPTIONS_PATH")
        settings = replace(settings, variant=variant, options=resolve_options(variant, options_path))
    if args.max_retries is not None:
        settings = replace(settings, max_retries=args.max_retries)

    result = run_once(args.prompt, settings)
    LOGGER.info("Finished with status %d (%s)", result.status, result.kind.value)
    print(json.dumps(result.body, indent=2))
    return 0 if result.ok else 1

if __name__ == "__main__":
    raise SystemExit(main())
