"""
Read-only web status interface

Serves /status.json and /config.json behind basic authentication. The
handler only reads the loop's latest snapshot, which the loop replaces
wholesale each tick.
"""

import base64
import json
import threading
from http.server import HTTPServer, BaseHTTPRequestHandler


class WebInterface:
    """Simple web interface for monitoring"""

    def __init__(self, loop, settings, logger=None):
        self.loop = loop
        self.settings = settings
        self.logger = logger
        self.server = None
        self.server_thread = None

    def check_auth(self, auth_header):
        """Verify basic authentication"""
        auth = self.settings.get('auth')
        if not auth:
            return True
        if not auth_header:
            return False

        try:
            auth_type, auth_string = auth_header.split(' ', 1)
            if auth_type.lower() != 'basic':
                return False

            decoded = base64.b64decode(auth_string).decode('utf-8')
            username, password = decoded.split(':', 1)
        except (ValueError, UnicodeDecodeError):
            return False

        return username == auth['username'] and password == auth['password']

    def status(self):
        """Current controller status"""
        state = self.loop.state
        return {
            'emergency': state.emergency.active,
            'banks': {
                str(bank_id): {
                    'duty_cycle': bank.duty_cycle,
                    'reference_temp': bank.reference_temp,
                }
                for bank_id, bank in sorted(state.banks.items())
            },
            'trend': state.trend.direction.value,
            'last_snapshot': state.last_snapshot,
        }

    def create_handler(self):
        """Create request handler with access to the loop"""
        parent = self

        class RequestHandler(BaseHTTPRequestHandler):
            def log_message(self, format, *args):
                """Suppress default logging"""
                pass

            def do_AUTHCHECK(self):
                """Check authentication and send 401 if needed"""
                if not parent.check_auth(self.headers.get('Authorization')):
                    self.send_response(401)
                    self.send_header('WWW-Authenticate', 'Basic realm="Fan Controller"')
                    self.send_header('Content-type', 'text/plain')
                    self.end_headers()
                    self.wfile.write(b'Authentication required')
                    return False
                return True

            def do_GET(self):
                """Handle GET requests"""
                if not self.do_AUTHCHECK():
                    return

                if self.path == '/status.json':
                    self.send_json(parent.status())
                elif self.path == '/config.json':
                    self.send_json(parent.loop.config.public_view())
                else:
                    self.send_error(404)

            def send_json(self, payload):
                self.send_response(200)
                self.send_header('Content-type', 'application/json')
                self.end_headers()
                self.wfile.write(json.dumps(payload, default=str).encode())

        return RequestHandler

    def start(self):
        """Start the web server in a background thread"""
        bind_addr = self.settings['bind_address']
        port = self.settings['port']

        self.server = HTTPServer((bind_addr, port), self.create_handler())
        self.server_thread = threading.Thread(target=self.server.serve_forever, daemon=True)
        self.server_thread.start()

        if self.logger:
            self.logger.info(f"Web interface started on http://{bind_addr}:{port}")

    def stop(self):
        """Stop the web server"""
        if self.server:
            self.server.shutdown()
            self.server.server_close()
            if self.logger:
                self.logger.info("Web interface stopped")
