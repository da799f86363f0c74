"""
Serve one paid JSON endpoint with the standard library's WSGI server.

Configuration is read from ``X402_*`` variables and an optional ``.env``
file; at minimum ``X402_RECEIVER_ADDRESS`` must be set.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from wsgiref.simple_server import make_server
from wsgiref.util import request_uri

from x402_paygate import ConfigError, GateRequest, GateResponse, create_gate

_REASONS = {200: "OK", 400: "Bad Request", 402: "Payment Required", 503: "Service Unavailable"}


def _headers_from_environ(environ: dict) -> dict:
    return {
        key[len("HTTP_"):].replace("_", "-"): value
        for key, value in environ.items()
        if key.startswith("HTTP_")
    }


def build_app(gate):
    def operation(request, context):
        return GateResponse(
            status_code=200,
            body={"message": "paid content", "payer": context.payer},
            headers={"Content-Type": "application/json"},
        )

    def app(environ, start_response):
        request = GateRequest(
            url=request_uri(environ),
            path=environ.get("PATH_INFO", "/"),
            headers=_headers_from_environ(environ),
        )
        response = gate.handle(request, operation)
        status = f"{response.status_code} {_REASONS.get(response.status_code, 'Error')}"
        start_response(status, list(response.headers.items()))
        return [json.dumps(response.body).encode("utf-8")]

    return app


def main() -> int:
    parser = argparse.ArgumentParser(description="Serve an x402-protected endpoint")
    parser.add_argument("--env-file", default=".env")
    parser.add_argument("--port", type=int, default=8402)
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

    try:
        gate = create_gate(env_file=args.env_file)
    except ConfigError as exc:
        logging.error("Invalid configuration: %s", exc)
        return 1

    with make_server("", args.port, build_app(gate)) as server:
        logging.info("Serving paid endpoint on port %d", args.port)
        server.serve_forever()
    return 0


if __name__ == "__main__":
    sys.exit(main())
