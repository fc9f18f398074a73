#!/usr/bin/env python3

import argparse
import logging
import sys
import json
from typing import List, Optional

from .chaincode import Operation, create_chaincode


def setup_logging(debug: bool = False) -> None:
    """Setup logging configuration."""
    level = logging.DEBUG if debug else logging.INFO

    filename = "bloodledger_debug.log" if debug else None

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        filename=filename,
        filemode='w'
    )

    if debug:
        print(f"Debug logging enabled. Writing to {filename}...")


# ---------------------------------------------------------------------------

def cmd_invoke(args) -> int:
    """Handle invoke command."""
    try:
        chaincode = create_chaincode(db_path=args.db, config_path=args.config)
        setup_logging(args.debug)

        response = chaincode.invoke(args.function, args.args)
        chaincode.close()

        if not response.ok:
            print(f"Error [{response.code}]: {response.message}")
            return 1

        if response.payload:
            print(response.payload.decode("utf-8", errors="replace"))
        else:
            print(f"{args.function} OK")
        return 0

    except Exception as e:
        print(f"Error: {e}")
        return 1


def cmd_history(args) -> int:
    """Handle history command."""
    try:
        chaincode = create_chaincode(db_path=args.db, config_path=args.config)
        setup_logging(args.debug)

        response = chaincode.invoke(Operation.HISTORY.value, [args.bag_id])
        chaincode.close()

        if not response.ok:
            print(f"Error [{response.code}]: {response.message}")
            return 1

        entries = json.loads(response.payload)
        if not entries:
            print(f"No history for blood bag {args.bag_id}")
            return 0

        print(f"Found {len(entries)} history entr{'y' if len(entries) == 1 else 'ies'}:\n")
        for entry in entries:
            value = entry["Value"]
            print(f"Tx: {entry['TxId']}")
            print(f"  Timestamp: {entry['Timestamp']}")
            print(f"  Deleted: {entry['IsDelete']}")
            if isinstance(value, dict):
                print(f"  Location: {value.get('location', 'N/A')}")
                print(f"  Status: {value.get('status', 'N/A')}")
                print(f"  Recipient: {value.get('recipient', 'N/A')}")
                print(f"  Destination: {value.get('destination', 'N/A')}")
            else:
                print(f"  Raw: {value}")
            print()

        if args.json:
            print("\nJSON:")
            print(json.dumps(entries, indent=2))

        return 0

    except Exception as e:
        print(f"Error: {e}")
        return 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Blood-bag custody ledger",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Register a bag
  bloodledger invoke createBloodBag B1 DONOR-7 BloodBank-A O + 450ml

  # Assign and move it
  bloodledger invoke assignBloodBagReceiver B1 R1 Hospital
  bloodledger invoke moveBagToLocation B1 Hospital

  # Show its history
  bloodledger history B1
""",
    )

    parser.add_argument(
        "--db",
        type=str,
        help="SQLite ledger path (default: from config, else bloodbag_ledger.db)",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Configuration file path",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    invoke_parser = subparsers.add_parser("invoke", help="Invoke a chaincode function")
    invoke_parser.add_argument(
        "function",
        help="Function name: " + ", ".join(op.value for op in Operation),
    )
    invoke_parser.add_argument("args", nargs="*", help="Function arguments")

    history_parser = subparsers.add_parser("history", help="Show a bag's history")
    history_parser.add_argument("bag_id", help="Blood bag ID")
    history_parser.add_argument(
        "--json",
        action="store_true",
        help="Also print the raw JSON history",
    )

    args = parser.parse_args(argv)

    if args.command == "invoke":
        return cmd_invoke(args)
    elif args.command == "history":
        return cmd_history(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
