"""
Simple HTTP server that publishes the .ics calendars for subscription.

Only useful with the ics calendar backend: point Apple Calendar, Google
Calendar or Outlook at http://<host>:<port>/Strava.ics
"""

import logging
import os
import socket
from functools import partial
from http.server import HTTPServer, SimpleHTTPRequestHandler

logger = logging.getLogger(__name__)


class CalendarHandler(SimpleHTTPRequestHandler):
    """Serves *.ics files from the calendar directory with calendar headers."""

    def do_GET(self):
        self._send_calendar(include_body=True)

    def do_HEAD(self):
        # Some calendar clients send HEAD before subscribing
        self._send_calendar(include_body=False)

    def _send_calendar(self, include_body):
        name = self.path.split('?', 1)[0].lstrip('/')
        if not name.endswith('.ics') or '/' in name or name.startswith('.'):
            self.send_error(404, "Not Found. Use: /<calendar>.ics")
            return

        calendar_path = os.path.join(self.directory, name)
        if not os.path.isfile(calendar_path):
            self.send_error(404, "Calendar file not found. Run: python3 sync_activities.py sync")
            return

        with open(calendar_path, 'rb') as f:
            content = f.read()

        self.send_response(200)
        self.send_header('Content-Type', 'text/calendar; charset=utf-8')
        self.send_header('Content-Disposition', f'inline; filename="{name}"')
        self.send_header('Content-Length', str(len(content)))
        self.send_header('Access-Control-Allow-Origin', '*')
        self.send_header('Cache-Control', 'no-cache, no-store, must-revalidate')
        self.end_headers()
        if include_body:
            self.wfile.write(content)

    def log_message(self, format, *args):
        logger.info("%s %s", self.address_string(), format % args)


def get_local_ip():
    """Get the local IP address of this machine."""
    try:
        s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        s.connect(("8.8.8.8", 80))
        local_ip = s.getsockname()[0]
        s.close()
        return local_ip
    except OSError:
        return "localhost"


def make_server(calendar_dir, port=8080, host=''):
    handler = partial(CalendarHandler, directory=os.path.abspath(calendar_dir))
    return HTTPServer((host, port), handler)


def run_server(calendar_dir, port=8080):
    """Run the calendar HTTP server until interrupted."""
    httpd = make_server(calendar_dir, port)
    local_ip = get_local_ip()
    print(f"✓ Calendar server running on port {port}")
    print(f"  Serving {os.path.abspath(calendar_dir)}")
    print(f"  Subscribe at: http://{local_ip}:{port}/<calendar>.ics")
    print("Press Ctrl+C to stop")
    try:
        httpd.serve_forever()
    except KeyboardInterrupt:
        print("\n✓ Server stopped")
    finally:
        httpd.server_close()
