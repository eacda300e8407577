"""
Control HTTP Server for the virtual clock.

Exposes the engine over HTTP so other processes (or a browser panel) can
read and calibrate the clock.

Endpoints:
    GET  /health    - Basic health check (200 OK if running)
    GET  /status    - JSON calibration and display labels
    GET  /metrics   - Prometheus-compatible metrics
    POST /time      - {"target": <epoch ms | ISO string>}
    POST /speed     - {"speed": <number > 0>}
    POST /reset     - Back to real time at speed 1

Usage:
    from virtual_clock.web import ControlServer

    server = ControlServer(engine, port=8080)
    server.start()
"""

import json
import logging
import threading
from http.server import HTTPServer, BaseHTTPRequestHandler
from typing import Any, Dict, Optional
from urllib.parse import urlsplit

from ..display import status_snapshot

logger = logging.getLogger(__name__)


class ControlRequestHandler(BaseHTTPRequestHandler):
    """HTTP request handler for clock endpoints."""

    # Class-level reference to the engine being served
    engine = None

    def log_message(self, format, *args):
        """Route HTTP access logs to debug."""
        logger.debug("%s - %s", self.address_string(), format % args)

    def do_GET(self):
        """Handle GET requests."""
        path = urlsplit(self.path).path
        if path == '/health':
            self._handle_health()
        elif path == '/status':
            self._handle_status()
        elif path == '/metrics':
            self._handle_metrics()
        else:
            self._send_json(404, {'error': 'Not Found'})

    def do_POST(self):
        """Handle calibration commands."""
        if self.engine is None:
            self._send_json(503, {'error': 'No engine connected'})
            return

        path = urlsplit(self.path).path
        if path not in ('/time', '/speed', '/reset'):
            self._send_json(404, {'error': 'Not Found'})
            return

        try:
            body = self._read_json_body()
        except ValueError as e:
            self._send_json(400, {'error': f'Invalid JSON body: {e}'})
            return

        try:
            if path == '/time':
                applied = self.engine.set_time(body.get('target'))
                error = 'Unparseable time target'
            elif path == '/speed':
                applied = self.engine.set_speed(body.get('speed'))
                error = 'Speed must be a finite number > 0'
            else:
                applied = self.engine.reset()
                error = None

            if applied:
                self._send_json(200, status_snapshot(self.engine))
            else:
                self._send_json(400, {'error': error})
        except Exception as e:
            logger.exception(f"Error handling {path}: {e}")
            self._send_json(500, {'error': str(e)})

    def _read_json_body(self) -> Dict[str, Any]:
        length = int(self.headers.get('Content-Length') or 0)
        if length <= 0:
            return {}
        data = json.loads(self.rfile.read(length).decode('utf-8'))
        if not isinstance(data, dict):
            raise ValueError('expected a JSON object')
        return data

    def _send_json(self, code: int, payload: Dict[str, Any]):
        self.send_response(code)
        self.send_header('Content-Type', 'application/json')
        self.end_headers()
        self.wfile.write(json.dumps(payload, indent=2).encode())

    def _handle_health(self):
        """Basic health check - returns 200 if server is running."""
        self.send_response(200)
        self.send_header('Content-Type', 'text/plain')
        self.end_headers()
        self.wfile.write(b'OK\n')

    def _handle_status(self):
        """Return JSON calibration and display labels."""
        if self.engine is None:
            self._send_json(503, {'error': 'No engine connected'})
            return
        try:
            self._send_json(200, status_snapshot(self.engine))
        except Exception as e:
            self._send_json(500, {'error': str(e)})

    def _handle_metrics(self):
        """Return Prometheus-compatible metrics."""
        if self.engine is None:
            self.send_response(503)
            self.send_header('Content-Type', 'text/plain')
            self.end_headers()
            self.wfile.write(b'# No engine connected\n')
            return
        try:
            metrics = self._format_prometheus_metrics(self.engine.get_calibration().to_dict())
            self.send_response(200)
            self.send_header('Content-Type', 'text/plain; version=0.0.4')
            self.end_headers()
            self.wfile.write(metrics.encode())
        except Exception as e:
            self.send_response(500)
            self.send_header('Content-Type', 'text/plain')
            self.end_headers()
            self.wfile.write(f'# Error: {e}\n'.encode())

    def _format_prometheus_metrics(self, calibration: Dict[str, float]) -> str:
        """Format a calibration snapshot as Prometheus metrics."""
        lines = [
            '# HELP virtual_clock_virtual_ms Current virtual time in epoch milliseconds',
            '# TYPE virtual_clock_virtual_ms gauge',
            f'virtual_clock_virtual_ms {calibration.get("virtual_ms", 0):.3f}',
            '',
            '# HELP virtual_clock_speed Virtual milliseconds per real millisecond',
            '# TYPE virtual_clock_speed gauge',
            f'virtual_clock_speed {calibration.get("speed", 1):g}',
            '',
            '# HELP virtual_clock_offset_ms Virtual time minus real time in milliseconds',
            '# TYPE virtual_clock_offset_ms gauge',
            f'virtual_clock_offset_ms {calibration.get("offset_ms", 0):.3f}',
            '',
        ]
        return '\n'.join(lines)


class ControlServer:
    """
    HTTP server exposing a VirtualTimeEngine.

    Runs in a background thread.
    """

    def __init__(self, engine=None, port: int = 8080, bind_address: str = '127.0.0.1'):
        """
        Initialize the control server.

        Args:
            engine: VirtualTimeEngine to serve
            port: HTTP port to listen on
            bind_address: Address to bind to (default: loopback only)
        """
        self.port = port
        self.bind_address = bind_address
        self.server: Optional[HTTPServer] = None
        self.thread: Optional[threading.Thread] = None
        self.engine = None
        self._running = False
        if engine is not None:
            self.set_engine(engine)

    def set_engine(self, engine):
        """
        Connect the engine to serve.

        Args:
            engine: VirtualTimeEngine instance
        """
        self.engine = engine
        ControlRequestHandler.engine = engine

    def start(self) -> bool:
        """
        Start the server in a background thread.

        Returns:
            True if the server is listening
        """
        if self._running:
            logger.warning("Control server already running")
            return True

        try:
            self.server = HTTPServer(
                (self.bind_address, self.port),
                ControlRequestHandler
            )
            # Set timeout so handle_request doesn't block forever
            self.server.timeout = 1.0
            self._running = True

            self.thread = threading.Thread(
                target=self._serve,
                name="ControlServer",
                daemon=True
            )
            self.thread.start()

            logger.info(f"Control server started on http://{self.bind_address}:{self.port}")
            logger.info("  GET  /health  - Health check")
            logger.info("  GET  /status  - JSON status")
            logger.info("  GET  /metrics - Prometheus metrics")
            logger.info("  POST /time, /speed, /reset - Calibration")
            return True

        except OSError as e:
            logger.error(f"Failed to start control server: {e}")
            self._running = False
            return False

    def _serve(self):
        """Server loop (runs in background thread)."""
        while self._running:
            try:
                self.server.handle_request()
            except Exception as e:
                if self._running:
                    logger.debug(f"Control server request error: {e}")

    def stop(self):
        """Stop the control server."""
        self._running = False
        if self.thread:
            self.thread.join(timeout=2.0)
            self.thread = None
        if self.server:
            self.server.server_close()
            self.server = None
        logger.info("Control server stopped")

    @property
    def running(self) -> bool:
        return self._running
