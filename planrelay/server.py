"""HTTP server hosting the flight plan relay."""

import argparse
import json
import logging
import sys
from http.server import BaseHTTPRequestHandler, HTTPServer
from pathlib import Path
from socketserver import ThreadingMixIn

from .config import ConfigError, DEFAULT_HOST, DEFAULT_PORT, load_settings
from .forwarder import Relay, RelayResponse

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(message)s'
LOG_DATEFMT = '%Y-%m-%d %H:%M:%S'


class RelayRequestHandler(BaseHTTPRequestHandler):
    """Routes every method on every path to the relay."""

    def log_message(self, format, *args):
        logger.debug("%s - " + format, self.address_string(), *args)

    def __getattr__(self, name):
        # Every verb besides OPTIONS and POST gets a 405, including unknown ones
        if name.startswith("do_"):
            return self._handle_other
        raise AttributeError(name)

    def _send(self, response: RelayResponse):
        """Write a relay response with its headers."""
        body = response.body
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.send_response(response.status)
        for key, value in response.headers.items():
            self.send_header(key, value)
        if response.status != 204:
            self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if body and self.command != "HEAD":
            self.wfile.write(body)

    def _read_body(self) -> bytes:
        length = int(self.headers.get("Content-Length", 0) or 0)
        return self.rfile.read(length) if length > 0 else b""

    def do_OPTIONS(self):
        """Handle CORS preflight requests."""
        self._send(self.server.relay.handle_preflight())

    def do_POST(self):
        """Forward the posted flight plan upstream."""
        relay = self.server.relay
        try:
            body = self._read_body()
            response = relay.handle_forward(self.headers.get("Content-Type", ""), body)
        except Exception:
            logger.exception("Relay failed")
            response = relay.respond(500, "Internal Server Error")
        self._send(response)

    def _handle_other(self):
        self._send(self.server.relay.handle_other(self.command))


class RelayServer(ThreadingMixIn, HTTPServer):
    """Threaded HTTP server carrying one Relay."""
    daemon_threads = True

    def __init__(self, server_address, relay: Relay):
        self.relay = relay
        super().__init__(server_address, RelayRequestHandler)


def setup_logging(verbose: bool = False, log_file=None):
    """Configure root logging, optionally adding a rotating log file."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATEFMT)

    if log_file:
        from logging.handlers import RotatingFileHandler
        handler = RotatingFileHandler(
            log_file, maxBytes=5 * 1024 * 1024, backupCount=3  # 5MB, keep 3 backups
        )
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))
        logging.getLogger().addHandler(handler)


def run_server(host: str = DEFAULT_HOST, port: int = DEFAULT_PORT, relay: Relay = None):
    """Start the HTTP server."""
    relay = relay or Relay()
    server = RelayServer((host, port), relay)
    logger.info(f"Flight plan relay at http://{host}:{port} -> {relay.upstream_url}")
    logger.info(f"Allowed origin: {relay.allowed_origin}")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Stopping relay")
    finally:
        server.server_close()


def submit_command(args) -> int:
    """Submit a flight plan file through the client fallback chain."""
    from .client import submit_plan

    try:
        plan = json.loads(Path(args.file).read_text())
    except (OSError, json.JSONDecodeError) as e:
        print(f"Cannot read flight plan {args.file}: {e}", file=sys.stderr)
        return 2

    response = submit_plan(args.url, plan, timeout=args.timeout)
    print(f"HTTP {response.status_code}")
    print(response.text)
    return 0 if response.ok else 1


def main(argv=None):
    """Entry point for the relay command line."""
    parser = argparse.ArgumentParser(description="Flight Plan Relay")
    subparsers = parser.add_subparsers(dest='command')

    # Server command
    serve_parser = subparsers.add_parser('serve', help='Run the relay server')
    serve_parser.add_argument('-H', '--host', default=None,
                              help=f'Interface to bind (default: {DEFAULT_HOST})')
    serve_parser.add_argument('-p', '--port', type=int, default=None,
                              help=f'Port to run on (default: {DEFAULT_PORT})')
    serve_parser.add_argument('-c', '--config', default=None,
                              help='YAML file overriding upstream_url, allowed_origin, host, port, timeout')
    serve_parser.add_argument('--log-file', default=None, help='Also write logs to this file')
    serve_parser.add_argument('-v', '--verbose', action='store_true', help='Log each request')

    # Client command
    submit_parser = subparsers.add_parser('submit', help='Submit a flight plan JSON file')
    submit_parser.add_argument('file', help='Path to the flight plan JSON')
    submit_parser.add_argument('--url', default=f'http://localhost:{DEFAULT_PORT}/',
                               help='Relay URL to post to')
    submit_parser.add_argument('--timeout', type=float, default=30,
                               help='Seconds to wait per attempt (default: 30)')

    args = parser.parse_args(argv)

    if args.command == 'serve':
        setup_logging(args.verbose, args.log_file)
        try:
            settings = load_settings(args.config)
        except ConfigError as e:
            logger.error(str(e))
            return 2
        relay = Relay(settings["upstream_url"], settings["allowed_origin"], settings["timeout"])
        run_server(args.host or settings["host"], args.port or settings["port"], relay)
        return 0
    elif args.command == 'submit':
        setup_logging()
        return submit_command(args)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
