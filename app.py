from __future__ import annotations

import argparse
import json
import sys
import uuid
from typing import List, Optional

from edgeconsent.core.consent.extension import CONSENT, HUB, BOOTED, UPDATE_CONSENT
from edgeconsent.core.events.models import BaseEvent, SourceSubsystem
from edgeconsent.core.events.registry import event_type_for
from edgeconsent.core.runtime import ConsentRuntime


def _print_consents(rt: ConsentRuntime) -> None:
    effective = rt.extension.effective_consents()
    print(json.dumps(effective.as_dict() if effective is not None else None, indent=2, ensure_ascii=False))


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="edgeconsent", description="Inspect and update stored consent preferences.")
    parser.add_argument("--root", default=".", help="directory holding config/, logs/ and runtime/")
    sub = parser.add_subparsers(dest="cmd", required=True)
    sub.add_parser("show", help="print the effective consent preferences")
    up = sub.add_parser("update", help="merge a consent document (JSON) into the stored preferences")
    up.add_argument("document", help='e.g. \'{"consents":{"collect":{"val":"y"}}}\'')
    sub.add_parser("reset", help="forget all stored consent preferences")
    args = parser.parse_args(argv)

    rt = ConsentRuntime.build(root=args.root)
    trace_id = uuid.uuid4().hex
    try:
        rt.event_bus.publish(BaseEvent(event_type=event_type_for(HUB, BOOTED), trace_id=trace_id, source_subsystem=SourceSubsystem.hub))
        if args.cmd == "update":
            try:
                doc = json.loads(args.document)
            except json.JSONDecodeError as e:
                print(f"Invalid JSON: {e}", file=sys.stderr)
                return 2
            if not isinstance(doc, dict):
                print("Consent document must be a JSON object.", file=sys.stderr)
                return 2
            rt.event_bus.publish(
                BaseEvent(
                    event_type=event_type_for(CONSENT, UPDATE_CONSENT),
                    trace_id=trace_id,
                    source_subsystem=SourceSubsystem.app,
                    payload=doc,
                )
            )
        elif args.cmd == "reset":
            rt.event_bus.flush()
            rt.manager.reset()
        rt.event_bus.flush()
        _print_consents(rt)
    finally:
        rt.shutdown()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
