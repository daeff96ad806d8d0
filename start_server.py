"""
Launcher for the Team Feedback Tracker.

Takes the first free port from SERVER_PORTS, creates the schema and hands
the ASGI app to uvicorn. Logging goes through the handler app.py installs.
"""

import logging
import socket
import sys

import uvicorn

from app import asgi_app
from config import SERVER_HOST, SERVER_PORTS
from tracker.models import init_db

logger = logging.getLogger("feedback_tracker.launcher")


def port_is_free(host, port):
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        try:
            sock.bind((host, port))
        except OSError:
            return False
    return True


def pick_port(host, ports=SERVER_PORTS):
    """First port in `ports` that can be bound on `host`, or None."""
    for port in ports:
        if port_is_free(host, port):
            return port
        logger.warning(f"Port {port} is already in use")
    return None


def main():
    port = pick_port(SERVER_HOST)
    if port is None:
        logger.error(f"No free port among {list(SERVER_PORTS)}")
        sys.exit(1)

    init_db()
    logger.info(f"Serving on http://{SERVER_HOST}:{port} (Ctrl+C to stop)")
    uvicorn.run(asgi_app, host=SERVER_HOST, port=port, log_config=None)


if __name__ == "__main__":
    main()
