import socket
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

TEST_IP = "127.0.0.1"


class _ResolverHandler(BaseHTTPRequestHandler):
    def log_message(self, format, *args):
        pass

    def _reply(self, status, body=b""):
        self.send_response(status)
        self.send_header("Content-Type", "text/plain")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def do_GET(self):
        path = self.path
        if path == "/meta_200.txt":
            self._reply(200, TEST_IP.encode())
        elif path == "/meta_padded.txt":
            self._reply(200, b"  127.0.0.1\n")
        elif path == "/meta_ipv6.txt":
            self._reply(200, b"\t2001:db8::1\r\n")
        elif path == "/meta_non_ip.txt":
            self._reply(200, b"HELLO!")
        elif path in ("/meta_403.txt", "/meta_500.txt"):
            self._reply(int(path[6:9]))
        elif path == "/meta_timeout.txt":
            time.sleep(0.3)
            try:
                self._reply(200, TEST_IP.encode())
            except OSError:  # client already gave up
                pass
        elif path == "/meta_drop.txt":
            # promise 20 bytes, send 4, then the connection is closed
            self.wfile.write(b"HTTP/1.0 200 OK\r\nContent-Type: text/plain\r\nContent-Length: 20\r\n\r\n127.")
        elif path == "/meta_cookie.txt":
            body = TEST_IP.encode()
            self.send_response(200)
            self.send_header("Set-Cookie", "tracker=abc; Path=/")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)
        elif path in ("/echo_cookie.txt", "/echo_authorization.txt"):
            # body is the named request header, empty when it was not sent
            self._reply(200, self.headers.get(path[6:-4], "").encode())
        elif path == "/meta_drip.txt":
            body = TEST_IP.encode()
            self.send_response(200)
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            try:
                for i in range(len(body)):
                    self.wfile.write(body[i:i + 1])
                    self.wfile.flush()
                    time.sleep(0.04)
            except OSError:  # client already gave up
                pass
        elif path == "/meta_raw_bytes.txt":
            self._reply(200, b" \xff\xfe1.2.3.4\n")
        elif path == "/meta_body_error.txt":
            self.send_response(200)
            self.send_header("Content-Length", "1")
            self.end_headers()
        else:
            self._reply(404)


class _ResolverServer(ThreadingHTTPServer):
    daemon_threads = True

    def handle_error(self, request, client_address):
        pass


@pytest.fixture
def http_server():
    """Base URL of a local resolver serving the /meta_*.txt paths above."""
    server = _ResolverServer(("127.0.0.1", 0), _ResolverHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_address[1]}"
    server.shutdown()
    server.server_close()


@pytest.fixture
def closed_port():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port
