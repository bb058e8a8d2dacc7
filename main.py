"""
Escort Dispatch — Entry Point.

Operator CLI over the dispatch engine:
    python main.py assign B-02-24 "Alice" "Bob"
    python main.py status B-02-24
    python main.py rotation [--reset]
    python main.py next-id
    python main.py available "Alice" 2024-02-10 14:00
"""

import argparse
import logging
import sys

from escort_dispatch.config import settings

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

from escort_dispatch.adapters.service_factory import build_dispatch_service
from escort_dispatch.core.errors import DispatchError


def parse_args(argv=None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Escort rider dispatch")
    sub = ap.add_subparsers(dest="command", required=True)

    assign = sub.add_parser("assign", help="Replace a request's riders")
    assign.add_argument("request_id")
    assign.add_argument("riders", nargs="*", help="Rider names (none clears the request)")
    assign.add_argument("--no-priority", action="store_true", help="Leave the rotation order untouched")
    assign.add_argument("--notify", action="store_true", help="Notify newly assigned riders")

    status = sub.add_parser("status", help="Recompute and store a request's status")
    status.add_argument("request_id")

    rotation = sub.add_parser("rotation", help="Print the rider rotation order")
    rotation.add_argument("--reset", action="store_true", help="Reseed the order from the active roster")

    sub.add_parser("next-id", help="Print the id for a request created today")

    available = sub.add_parser("available", help="Check a rider's conflicts and availability")
    available.add_argument("rider")
    available.add_argument("date")
    available.add_argument("time")

    return ap.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    service = build_dispatch_service(settings)

    try:
        if args.command == "assign":
            result = service.process_assignment(
                args.request_id, args.riders,
                use_priority=not args.no_priority, notify=args.notify,
            )
            print(f"{result.request_id}: {result.status.value} "
                  f"({result.success_count} assigned, {result.fail_count} failed)")
            for error in result.errors:
                print(f"  failed: {error}")
        elif args.command == "status":
            print(service.apply_status(args.request_id).value)
        elif args.command == "rotation":
            order = service.reset_rotation() if args.reset else service.get_rotation_order()
            for position, name in enumerate(order, start=1):
                print(f"{position:3d}. {name}")
        elif args.command == "next-id":
            print(service.next_request_id())
        elif args.command == "available":
            ok = service.is_rider_available(args.rider, args.date, args.time)
            print("available" if ok else "unavailable")
    except DispatchError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
