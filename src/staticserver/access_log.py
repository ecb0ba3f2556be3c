"""
=============================================================================
ACCESS LOG
=============================================================================

One line per answered request, on the "staticserver.access" logger:

    text:  127.0.0.1 - - [15/Jun/2024:10:00:00 +0000] "GET /index.html" 200 5120 1.42ms
    json:  {"request_id": "3f2a9c1b", "method": "GET", "path": "/index.html", ...}

The logger is separate from the application loggers so it can be routed
on its own:

    logging.getLogger("staticserver.access").addHandler(file_handler)

The byte count is what actually reached the socket (headers excluded),
so an interrupted download shows up as a short count.

=============================================================================
"""

import json
import logging
import time
import uuid
from dataclasses import asdict, dataclass
from typing import Optional

from .http.request import HTTPRequest


logger = logging.getLogger("staticserver.access")


@dataclass
class RequestLog:
    """
    Structured log entry for one request/response exchange.

    request_id:     Short random id to correlate with other log lines
    method:         HTTP method
    path:           Request path
    query:          Query string parameters, if any
    client_ip:      Client's IP address
    user_agent:     Browser/client identifier
    status_code:    Response status
    bytes_sent:     Body bytes written to the socket
    duration_ms:    Time spent on the exchange
    timestamp:      When the request finished
    """

    request_id: str
    method: str
    path: str
    query: str
    client_ip: str
    user_agent: str
    status_code: int
    bytes_sent: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        """Apache-style line, readable by GoAccess and friends."""
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {self.status_code} '
            f'{self.bytes_sent} {self.duration_ms:.2f}ms'
        )


class AccessLogger:
    """
    Emits a RequestLog for every exchange.

    Usage:
        access = AccessLogger(log_format="json")
        start = time.time()
        ...serve...
        access.log(request, status=200, bytes_sent=512, started_at=start)
    """

    def __init__(self, log_format: str = "text", log_level: int = logging.INFO):
        if log_format not in ("text", "json"):
            raise ValueError(f"Invalid log_format: {log_format}")
        self.log_format = log_format
        self.log_level = log_level

    def build(
        self,
        request: Optional[HTTPRequest],
        status: int,
        bytes_sent: int,
        started_at: float,
        client_ip: str = "-",
    ) -> RequestLog:
        """Build the entry; `request` is None when the request never parsed."""
        return RequestLog(
            request_id=str(uuid.uuid4())[:8],
            method=request.method if request else "-",
            path=request.path if request else "-",
            query=str(request.query_params) if request and request.query_params else "",
            client_ip=request.client_address[0] if request else client_ip,
            user_agent=(request.user_agent if request else "") or "-",
            status_code=int(status),
            bytes_sent=bytes_sent,
            duration_ms=(time.time() - started_at) * 1000,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

    def log(
        self,
        request: Optional[HTTPRequest],
        status: int,
        bytes_sent: int,
        started_at: float,
        client_ip: str = "-",
    ) -> RequestLog:
        entry = self.build(request, status, bytes_sent, started_at, client_ip)
        if not logger.isEnabledFor(self.log_level):
            return entry

        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(entry.to_dict()))
        else:
            logger.log(self.log_level, entry.to_text())
        return entry
