"""JSON HTTP surface over the entry service."""

import json
import logging
import sqlite3
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Optional
from urllib.parse import parse_qs, urlparse

from pydantic import ValidationError

from .models import CandidateEntry, SubmissionErrorKind
from .service import EntryService

logger = logging.getLogger(__name__)

MAX_BODY_BYTES = 64 * 1024


class BehaveLogAPIHandler(BaseHTTPRequestHandler):
    """Routes:

        GET  /options          form choices
        POST /entries          submit a candidate entry
        GET  /entries?limit=N  most recent entries, append order
    """

    server: "BehaveLogServer"

    def _send_json(self, status: int, body: Any) -> None:
        data = json.dumps(body).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def _send_error_json(self, status: int, error: str, message: str) -> None:
        self._send_json(status, {"error": error, "message": message})

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug(f"{self.address_string()} {format % args}")

    def do_GET(self) -> None:
        url = urlparse(self.path)
        if url.path == "/options":
            options = self.server.service.get_form_options()
            self._send_json(200, options.model_dump(mode="json", by_alias=True))
        elif url.path == "/entries":
            try:
                limit = self._parse_limit(url.query)
            except ValueError as e:
                self._send_error_json(400, "bad_request", str(e))
                return
            try:
                entries = self.server.service.recent_entries(limit=limit)
            except sqlite3.Error as e:
                logger.error(f"Could not read entries: {e}")
                self._send_error_json(503, "storage_unavailable", "Entries could not be read")
                return
            self._send_json(200, {"entries": [e.to_row() for e in entries]})
        else:
            self._send_error_json(404, "not_found", f"No route for {url.path}")

    def do_POST(self) -> None:
        url = urlparse(self.path)
        if url.path != "/entries":
            self._send_error_json(404, "not_found", f"No route for {url.path}")
            return

        payload = self._read_json_body()
        if payload is None:
            return
        try:
            candidate = CandidateEntry.model_validate(payload)
        except ValidationError as e:
            self._send_error_json(400, "bad_request", f"Malformed entry payload: {e.error_count()} error(s)")
            return

        result = self.server.service.submit(candidate)
        if result.entry is not None:
            self._send_json(201, result.entry.to_row())
            return

        error = result.error
        if error.kind is SubmissionErrorKind.REJECTED:
            rejection = error.rejection
            self._send_json(
                422,
                {
                    "error": "rejected",
                    "reason": rejection.reason.value,
                    "field": rejection.field,
                    "message": rejection.message,
                },
            )
            return

        persist_error = error.persist_error
        self._send_json(
            503 if persist_error.retryable else 500,
            {
                "error": "persist_failed",
                "kind": persist_error.kind.value,
                "retryable": persist_error.retryable,
                "message": persist_error.message,
            },
        )

    def _read_json_body(self) -> Optional[dict]:
        """Decode the request body as a JSON object, answering 400/413 on failure."""
        try:
            length = int(self.headers.get("Content-Length", "0"))
        except ValueError:
            self._send_error_json(400, "bad_request", "Invalid Content-Length")
            return None
        if length > MAX_BODY_BYTES:
            self._send_error_json(413, "payload_too_large", f"Body exceeds {MAX_BODY_BYTES} bytes")
            return None

        raw = self.rfile.read(length) if length > 0 else b""
        try:
            payload = json.loads(raw.decode("utf-8") or "null")
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            self._send_error_json(400, "bad_request", f"Body is not valid JSON: {e}")
            return None
        if not isinstance(payload, dict):
            self._send_error_json(400, "bad_request", "Body must be a JSON object")
            return None
        return payload

    @staticmethod
    def _parse_limit(query: str) -> Optional[int]:
        values = parse_qs(query).get("limit")
        if not values:
            return None
        value = values[0].strip()
        if not value.isdigit():
            raise ValueError("limit must be a non-negative integer")
        return int(value)


class BehaveLogServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, address: tuple[str, int], service: EntryService):
        super().__init__(address, BehaveLogAPIHandler)
        self.service = service


def create_server(service: EntryService, host: str = "127.0.0.1", port: int = 8080) -> BehaveLogServer:
    """Bind a threaded server; port 0 picks a free port."""
    return BehaveLogServer((host, port), service)
