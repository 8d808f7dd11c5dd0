# airdl/cli.py
from __future__ import annotations
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from rich.status import Status

from . import ui
from .core import (
    AirError,
    StorageError,
    artifact_path_for,
    config_path,
    download_model,
    load_cfg,
    parse_urn,
    resolve_base_dir,
    resolve_descriptor,
    resolve_token,
    save_cfg,
    setup_logging,
    update_model,
)
from .core.paths import resolve_paths

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="airdl",
        description="Download AI models by AIR URN (urn:air:{ecosystem}:{type}:{source}:{id}[@{version}]) "
                    "and keep them in sync via their .metadata.json sidecar.",
    )
    mode = ap.add_mutually_exclusive_group(required=True)
    mode.add_argument("-u", "--urn", help="Download the model identified by this URN")
    mode.add_argument("--update", metavar="METADATA", help="Re-sync the model described by this .metadata.json file")
    mode.add_argument("--config-path", action="store_true", help="Print the config file location and exit")
    ap.add_argument("-t", "--token", help="Bearer token (API key) for authenticated requests")
    ap.add_argument("-b", "--base-dir", help="Root directory for downloaded models (default ./models)")
    ap.add_argument("--save-token", action="store_true", help="Store --token in the config file for later runs")
    ap.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging for core/network")
    return ap


def run_download(raw_urn: str, base_dir: Path, token: Optional[str]) -> int:
    urn = parse_urn(raw_urn)
    ui.show_urn(urn)
    with Status("[bold]Resolving model…[/]", console=ui.console, spinner="dots"):
        desc = resolve_descriptor(urn, token)
    ui.show_descriptor(desc)
    artifact, _ = resolve_paths(urn, base_dir)
    with ui.transfer_progress(artifact.name) as on_progress:
        result = download_model(urn, base_dir, token, descriptor=desc, on_progress=on_progress)
    ui.show_download_result(result)
    return EXIT_OK


def run_update(metadata_file: str, token: Optional[str]) -> int:
    path = Path(metadata_file).expanduser()
    with ui.transfer_progress(artifact_path_for(path).name) as on_progress:
        result = update_model(path, token, on_progress=on_progress)
    ui.show_update_result(result)
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    cfg = load_cfg()
    setup_logging(verbose=args.verbose or bool(cfg.get("verbose")))

    if args.config_path:
        ui.console.print(str(config_path()))
        return EXIT_OK

    token = resolve_token(args.token, cfg)
    if args.save_token and not args.token:
        logger.warning("--save-token given without --token; nothing saved")

    try:
        if args.save_token and args.token:
            cfg["token"] = args.token
            try:
                logger.info("Saved token to %s", save_cfg(cfg))
            except OSError as e:
                raise StorageError(f"Cannot save config ({e.strerror})", config_path()) from e
        if args.urn:
            return run_download(args.urn, resolve_base_dir(args.base_dir, cfg), token)
        return run_update(args.update, token)
    except AirError as e:
        ui.show_error(e)
        return e.exit_code
    except KeyboardInterrupt:
        ui.show_interrupted()
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
