#!/usr/bin/env python3
"""
catalogreg CLI

Reference host for the registry. The caller identity comes from --as;
state lives in --store-dir; settings come from the --config YAML file.

Usage:
  catalogreg create <metadata> --as <account>
  catalogreg batch-create <metadata>... --as <account>
  catalogreg transfer <asset_id> <recipient> --as <account>
  catalogreg update <asset_id> <metadata> --as <account>
  catalogreg retire <asset_id>... --as <account>
  catalogreg show <asset_id>...
  catalogreg count
  catalogreg owned <account>
  catalogreg journal [<asset_id>]
  catalogreg verify
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import RegistryConfig
from .errors import RegistryError
from .registry import AssetRegistry

DEFAULT_CONFIG = "catalog.yaml"
DEFAULT_STORE_DIR = "./catalog_store"


def open_registry(args) -> AssetRegistry:
    config = RegistryConfig.from_file(Path(args.config))
    return AssetRegistry(config, store_dir=Path(args.store_dir))


def _require_caller(args) -> str:
    if not args.caller:
        raise SystemExit(f"Error: '{args.command}' needs a caller identity (--as)")
    return args.caller


def cmd_create(args, registry: AssetRegistry):
    asset_id = registry.create(_require_caller(args), args.metadata)
    print(f"Created asset {asset_id}")


def cmd_batch_create(args, registry: AssetRegistry):
    asset_ids = registry.batch_create(_require_caller(args), args.metadata)
    print(f"Created assets: {', '.join(str(i) for i in asset_ids)}")


def cmd_transfer(args, registry: AssetRegistry):
    registry.transfer(_require_caller(args), args.asset_id, args.recipient)
    print(f"Asset {args.asset_id} now owned by {args.recipient}")


def cmd_update(args, registry: AssetRegistry):
    registry.update_metadata(_require_caller(args), args.asset_id, args.metadata)
    print(f"Asset {args.asset_id} metadata updated")


def cmd_retire(args, registry: AssetRegistry):
    caller = _require_caller(args)
    if len(args.asset_id) == 1:
        registry.retire(caller, args.asset_id[0])
    else:
        registry.batch_retire(caller, args.asset_id)
    print(f"Retired: {', '.join(str(i) for i in args.asset_id)}")


def cmd_show(args, registry: AssetRegistry):
    assets = registry.get_assets(args.asset_id)
    for asset_id, asset in zip(args.asset_id, assets):
        if asset is None:
            metadata = registry.get_metadata(asset_id)
            if metadata is None:
                print(f"{asset_id}: not found")
            else:
                print(f"{asset_id}: retired (metadata: {metadata})")
        else:
            print(f"{asset.asset_id}: owner={asset.owner} metadata={asset.metadata}")


def cmd_count(args, registry: AssetRegistry):
    print(f"Assets created: {registry.asset_count()}")
    print(f"Live assets: {len(registry)}")


def cmd_owned(args, registry: AssetRegistry):
    asset_ids = registry.assets_owned_by(args.account)
    print(f"{args.account} owns {len(asset_ids)} asset(s)")
    for asset_id in asset_ids:
        print(f"  {asset_id}: {registry.get_metadata(asset_id)}")


def cmd_journal(args, registry: AssetRegistry):
    if registry.journal is None:
        print("Journal is disabled")
        return
    if args.asset_id is not None:
        entries = registry.history(args.asset_id)
    else:
        entries = registry.journal.list()
    for entry in entries:
        if args.json:
            print(json.dumps(entry.to_dict()))
        else:
            print(f"{entry.recorded_at} {entry.action:<15} asset={entry.asset_id} "
                  f"by={entry.caller} {json.dumps(entry.data, sort_keys=True)}")


def cmd_verify(args, registry: AssetRegistry):
    if registry.journal is None:
        print("Journal is disabled")
        return
    entries = registry.journal.list()
    bad = [e for e in entries if not registry.journal.verify(e)]
    for entry in bad:
        print(f"  [INVALID] {entry.entry_id}: {entry.action} asset {entry.asset_id}")
    print(f"Verified {len(entries) - len(bad)}/{len(entries)} journal entries")
    if bad:
        sys.exit(1)


COMMANDS = {
    "create": cmd_create,
    "batch-create": cmd_batch_create,
    "transfer": cmd_transfer,
    "update": cmd_update,
    "retire": cmd_retire,
    "show": cmd_show,
    "count": cmd_count,
    "owned": cmd_owned,
    "journal": cmd_journal,
    "verify": cmd_verify,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="catalogreg",
        description="Catalog asset registry",
    )
    parser.add_argument("--config", default=DEFAULT_CONFIG,
                        help=f"Registry config YAML (default: {DEFAULT_CONFIG})")
    parser.add_argument("--store-dir", default=DEFAULT_STORE_DIR,
                        help=f"Registry state directory (default: {DEFAULT_STORE_DIR})")
    parser.add_argument("--as", dest="caller", help="Account invoking the operation")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    create_parser = subparsers.add_parser("create", help="Create an asset (administrator)")
    create_parser.add_argument("metadata", help="Asset metadata")

    batch_parser = subparsers.add_parser("batch-create", help="Create several assets (administrator)")
    batch_parser.add_argument("metadata", nargs="+", help="Metadata, one per asset")

    transfer_parser = subparsers.add_parser("transfer", help="Transfer an asset (owner)")
    transfer_parser.add_argument("asset_id", type=int)
    transfer_parser.add_argument("recipient", help="Receiving account")

    update_parser = subparsers.add_parser("update", help="Replace asset metadata (owner)")
    update_parser.add_argument("asset_id", type=int)
    update_parser.add_argument("metadata", help="New metadata")

    retire_parser = subparsers.add_parser("retire", help="Retire assets (administrator)")
    retire_parser.add_argument("asset_id", type=int, nargs="+")

    show_parser = subparsers.add_parser("show", help="Show assets")
    show_parser.add_argument("asset_id", type=int, nargs="+")

    subparsers.add_parser("count", help="Show asset counts")

    owned_parser = subparsers.add_parser("owned", help="List assets owned by an account")
    owned_parser.add_argument("account")

    journal_parser = subparsers.add_parser("journal", help="Print journal entries")
    journal_parser.add_argument("asset_id", type=int, nargs="?", help="Only this asset")
    journal_parser.add_argument("--json", action="store_true", help="One JSON object per line")

    subparsers.add_parser("verify", help="Verify journal signatures")

    return parser


def main(argv: Optional[List[str]] = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    handler = COMMANDS.get(args.command)
    if handler is None:
        parser.print_help()
        sys.exit(1)

    try:
        registry = open_registry(args)
        handler(args, registry)
    except RegistryError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
