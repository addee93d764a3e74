"""
Zero-config ASGI example.

Serves a bare ASGI app on a free port and points https://<folder>.local at it
through Caddy.

Usage:
    # Caddy must be running with its admin API on 127.0.0.1:2019
    caddy run

    python examples/example_asgi.py

    # Optional devdomain.yml next to this file:
    #   domain: hello.local
    #   fail_on_active_domain: false

    # Remove the mapping afterwards
    devdomain rm hello.local --unmap
"""

import json

from devdomain.runner import run


async def app(scope, receive, send):
    if scope["type"] != "http":
        return
    body = json.dumps({"app": "devdomain example", "path": scope["path"]}).encode()
    await send(
        {
            "type": "http.response.start",
            "status": 200,
            "headers": [(b"content-type", b"application/json")],
        }
    )
    await send({"type": "http.response.body", "body": body})


if __name__ == "__main__":
    run(app, log_level="info")
