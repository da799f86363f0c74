"""
Fetch an x402-protected URL, paying with an EVM key when the server asks.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

from x402_paygate import PaymentError, create_evm_signer, create_payment_client, get_settlement


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Pay for an x402-protected resource")
    parser.add_argument("url", help="Resource URL to fetch")
    parser.add_argument(
        "--network",
        default="bsc",
        help="Network the signer pays on (default: bsc)",
    )
    parser.add_argument(
        "--private-key",
        default=os.environ.get("X402_PAYER_PRIVATE_KEY"),
        help="Payer private key (default: $X402_PAYER_PRIVATE_KEY)",
    )
    parser.add_argument(
        "--max-amount",
        type=int,
        help="Refuse to pay more than this many atomic units per request",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Python logging level (default: INFO)",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
    )
    if not args.private_key:
        logging.error("A payer private key is required (--private-key or X402_PAYER_PRIVATE_KEY)")
        return 1

    try:
        signer = create_evm_signer(args.private_key, args.network, max_amount=args.max_amount)
    except ValueError as exc:
        logging.error("Invalid signer configuration: %s", exc)
        return 1

    client = create_payment_client(
        [signer],
        on_payment_attempt=lambda event: logging.info(
            "Paying for %s on %s", event.url, event.network
        ),
    )
    try:
        response = client.get(args.url)
    except PaymentError as exc:
        logging.error("Payment failed: %s", exc)
        return 1

    settlement = get_settlement(response)
    if settlement is not None:
        logging.info(
            "Payment settled on %s. Transaction hash: %s",
            settlement.network,
            settlement.transaction,
        )
    print(response.text)
    return 0 if response.ok else 1


if __name__ == "__main__":
    sys.exit(main())
