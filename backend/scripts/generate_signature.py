#!/usr/bin/env python3
"""
Generate signed webhook requests for manual testing.

Usage:
    # Sign the built-in sample event with WEBHOOK_SECRET from the environment
    python generate_signature.py

    # Sign a payload file with an explicit secret
    python generate_signature.py --payload event.json --secret my-secret

    # Target a deployed instance
    python generate_signature.py --url https://webhooks.example.com/webhooks/payment
"""

import argparse
import json
import os
import shlex
import sys
import time

from payment_webhooks.core.config import SIGNATURE_HEADER, TIMESTAMP_HEADER
from payment_webhooks.services.signature import sign_payload

DEFAULT_URL = "http://localhost:8000/webhooks/payment"

SAMPLE_EVENT = {
    "event_id": "evt_8f7d6e5c4b3a2",
    "event_type": "transaction.completed",
    "timestamp": "2025-10-28T14:30:00Z",
    "data": {
        "transaction_id": "txn_1a2b3c4d5e6f",
        "amount": 2500.75,
        "currency": "USD",
        "sender": {
            "id": "usr_sender_12345",
            "name": "Alice Johnson",
            "email": "alice.j@example.com",
            "country": "US"
        },
        "receiver": {
            "id": "usr_receiver_67890",
            "name": "Raj Patel",
            "email": "raj.p@example.in",
            "country": "IN"
        },
        "status": "completed",
        "payment_method": "bank_transfer",
        "metadata": {
            "reference": "INV-2025-001",
            "notes": "Q4 payment"
        }
    }
}


def load_payload(path):
    """Payload from a JSON file, or the sample event when no path is given"""
    if not path:
        return SAMPLE_EVENT
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def serialize(payload) -> str:
    # Compact form; the signature covers these exact bytes
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def curl_command(url: str, body: str, headers: dict) -> str:
    lines = [f"curl -X POST {shlex.quote(url)} \\", '  -H "Content-Type: application/json" \\']
    for name, value in headers.items():
        lines.append(f'  -H "{name}: {value}" \\')
    lines.append(f"  -d {shlex.quote(body)}")
    return "\n".join(lines)


def main():
    parser = argparse.ArgumentParser(
        description='Generate webhook signature headers and a curl command',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Sign the sample event
  WEBHOOK_SECRET=abcd12345 python %(prog)s

  # Sign your own payload
  python %(prog)s --payload event.json --secret abcd12345

  # Produce a signature without a timestamp (no replay protection)
  python %(prog)s --body-only
        """
    )

    parser.add_argument('--payload', help='Path to a JSON payload file (default: built-in sample event)')
    parser.add_argument('--secret', default=os.getenv('WEBHOOK_SECRET'), help='Webhook secret (default: $WEBHOOK_SECRET)')
    parser.add_argument('--url', default=DEFAULT_URL, help=f'Webhook endpoint (default: {DEFAULT_URL})')
    parser.add_argument('--timestamp', type=int, help='Unix timestamp to sign with (default: now)')
    parser.add_argument('--body-only', action='store_true', help='Use the body-only signature in the curl command')

    args = parser.parse_args()

    if not args.secret:
        print("❌ Error: No secret given. Set WEBHOOK_SECRET or pass --secret")
        sys.exit(1)

    try:
        payload = load_payload(args.payload)
    except (OSError, ValueError) as e:
        print(f"❌ Error: Could not read payload: {e}")
        sys.exit(1)

    body = serialize(payload)
    timestamp = str(args.timestamp if args.timestamp is not None else int(time.time()))

    timestamped_signature = sign_payload(args.secret, body, timestamp)
    body_only_signature = sign_payload(args.secret, body)

    print("=" * 70)
    print("🔐 WEBHOOK SIGNATURE GENERATOR")
    print("=" * 70)
    print(f"\n🔑 Using secret: {args.secret[:4]}...")
    print(f"⏰ Timestamp: {timestamp}")

    print("\n✅ Timestamped headers (recommended):\n")
    print(f"{SIGNATURE_HEADER}: {timestamped_signature}")
    print(f"{TIMESTAMP_HEADER}: {timestamp}")

    print("\n⚠️  Body-only header (no replay protection):\n")
    print(f"{SIGNATURE_HEADER}: {body_only_signature}")

    if args.body_only:
        headers = {SIGNATURE_HEADER: body_only_signature}
    else:
        headers = {SIGNATURE_HEADER: timestamped_signature, TIMESTAMP_HEADER: timestamp}

    print("\n" + "=" * 70)
    print("💻 CURL COMMAND")
    print("=" * 70 + "\n")
    print(curl_command(args.url, body, headers))

    print("\n" + "=" * 70)
    if not args.body_only:
        print("• Timestamped signatures expire after WEBHOOK_TIMESTAMP_TOLERANCE seconds (default 300)")
    print("• A 401 response means the secret differs from the server's WEBHOOK_SECRET")
    print("=" * 70)


if __name__ == '__main__':
    main()
