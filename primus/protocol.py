"""Datagrams exchanged with Servus units and the per-connection protocol state."""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from http import HTTPStatus
from typing import Any, Protocol

log = logging.getLogger(__name__)

PROTOCOL_VERSION = "RTSP/1.0"
UUID_PLAIN_LENGTH = 36
MAX_DATAGRAM_SIZE = 1024 * 1024

_HEADER_END = re.compile(rb"\r?\n\r?\n")


class DatagramError(ValueError):
    """A datagram is malformed or larger than allowed."""


class StatementNotFound(KeyError):
    """A datagram carries no header of the requested name."""


class ServusNotFound(LookupError):
    """No Servus is known under the given authenticator."""


class RejectDatagram(Exception):
    """A request was refused; the session ends after ``response`` is sent."""

    def __init__(self, reason: str, response: Response) -> None:
        super().__init__(reason)
        self.response = response


class Status(Enum):
    """Response status codes used by the dispatcher."""

    CONTINUE = 100
    OK = 200
    CREATED = 201
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    METHOD_NOT_ALLOWED = 405
    NOT_ACCEPTABLE = 406

    @property
    def phrase(self) -> str:
        return HTTPStatus(self.value).phrase


def parse_timestamp(text: str) -> datetime:
    """Read seconds since the epoch, possibly fractional, as a UTC datetime."""
    seconds = float(text.strip())
    if not math.isfinite(seconds):
        raise ValueError(f"invalid timestamp: {text!r}")
    return datetime.fromtimestamp(seconds, timezone.utc)


class Request:
    """A request datagram assembled from the chunks received on a socket."""

    def __init__(self, max_size: int = MAX_DATAGRAM_SIZE) -> None:
        self.max_size = max_size
        self.method = ""
        self.payload = b""
        self._buffer = bytearray()
        self._headers: dict[str, str] = {}
        self._body_start: int | None = None
        self._body_length = 0
        self._complete = False

    @property
    def headers(self) -> dict[str, str]:
        """Headers with lower-case names."""
        return dict(self._headers)

    def push(self, data: bytes) -> None:
        """Append a received chunk; raise DatagramError if it cannot be a datagram."""
        if self._complete:
            raise DatagramError("datagram is already complete")
        self._buffer += data
        if len(self._buffer) > self.max_size:
            raise DatagramError("datagram too large")
        self._parse()

    def is_complete(self) -> bool:
        """Tell whether the head and the whole payload have arrived."""
        return self._complete

    def header(self, name: str) -> str:
        """Return the value of header ``name``, matched without regard to case."""
        try:
            return self._headers[name.lower()]
        except KeyError:
            raise StatementNotFound(name) from None

    def _parse(self) -> None:
        if self._body_start is None:
            end = _HEADER_END.search(self._buffer)
            if end is None:
                return
            self._parse_head(bytes(self._buffer[: end.start()]))
            self._body_start = end.end()
        if len(self._buffer) - self._body_start >= self._body_length:
            self.payload = bytes(
                self._buffer[self._body_start : self._body_start + self._body_length]
            )
            self._complete = True

    def _parse_head(self, head: bytes) -> None:
        try:
            lines = head.decode("utf-8").splitlines()
        except UnicodeDecodeError as error:
            raise DatagramError("datagram head is not UTF-8") from error
        if not lines or not lines[0].split():
            raise DatagramError("datagram has no request line")
        self.method = lines[0].split()[0]
        for line in lines[1:]:
            name, separator, value = line.partition(":")
            if not separator or not name.strip():
                raise DatagramError(f"malformed header line: {line!r}")
            self._headers[name.strip().lower()] = value.strip()
        raw_length = self._headers.get("content-length", "0")
        try:
            length = int(raw_length)
        except ValueError:
            raise DatagramError(f"bad Content-Length: {raw_length!r}") from None
        if length < 0:
            raise DatagramError(f"bad Content-Length: {raw_length!r}")
        self._body_length = length


@dataclass
class Response:
    """A response datagram; headers are sent in insertion order."""

    status: Status
    headers: dict[str, str] = field(default_factory=dict)
    body: str = ""

    def encode(self) -> bytes:
        """Serialise the response for the wire."""
        body = self.body.encode("utf-8")
        lines = [f"{PROTOCOL_VERSION} {self.status.value} {self.status.phrase}"]
        lines.extend(f"{name}: {value}" for name, value in self.headers.items())
        if body:
            lines.append(f"Content-Length: {len(body)}")
        return ("\r\n".join(lines) + "\r\n\r\n").encode("utf-8") + body


class _Servus(Protocol):
    servus_id: int
    title: str
    token: str
    enabled: bool

    def set_online(self) -> None: ...

    def set_offline(self) -> None: ...

    def set_running_since(self, since: datetime) -> None: ...

    def configuration_as_json(self) -> str: ...


class ServusDirectory(Protocol):
    """Storage behind the dispatcher: Servus lookup, avisos and sensor readings."""

    def by_authenticator(self, authenticator: str) -> Any:
        """Return the Servus for ``authenticator`` or raise ServusNotFound."""
        ...

    def enqueue_fabula(
        self, timestamp: datetime, servus_id: int, originator: str, severity: int, payload: str
    ) -> None: ...

    def notice_dht_humidity(self, timestamp: datetime, sensor_token: str, humidity: float) -> None: ...

    def notice_dht_temperature(
        self, timestamp: datetime, sensor_token: str, temperature: float
    ) -> None: ...

    def notice_ds_temperature(
        self, timestamp: datetime, sensor_token: str, temperature: float
    ) -> None: ...


class Recorder(Protocol):
    """Keeps a debug trail of one Servus session."""

    def comment(self, text: str) -> None: ...

    def exchange(self, request: Request, response: Response) -> None: ...


class ProtocolSession:
    """The request-response dialogue with one connected Servus."""

    def __init__(
        self,
        directory: ServusDirectory,
        recorder: Recorder | None = None,
        neutrino_interval: int = 60,
        software_version: str = "",
        on_aviso: Callable[[], None] | None = None,
    ) -> None:
        self.directory = directory
        self.recorder = recorder
        self.neutrino_interval = neutrino_interval
        self.software_version = software_version
        self.on_aviso = on_aviso
        self.expected_cseq = 1
        self.servus: _Servus | None = None
        self._handlers: Mapping[str, Callable[[Request], Response]] = {
            "AUTH": self._auth,
            "SETUP": self._setup,
            "PLAY": self._continue,
            "NEUTRINO": self._continue,
            "AVISO": self._aviso,
            "DHT_HUMIDITY": self._dht_humidity,
            "DHT_TEMPERATURE": self._dht_temperature,
            "DS_TEMPERATURE": self._ds_temperature,
        }

    def handle(self, request: Request) -> Response:
        """Answer a complete request.

        Raises RejectDatagram, carrying the response still to be sent, when
        the session has to end.
        """
        if not request.is_complete():
            raise DatagramError("datagram is incomplete")
        try:
            response = self._dispatch(request)
        except RejectDatagram as rejection:
            log.warning("[Dispatcher] Rejected: %s", rejection)
            if self.recorder is not None:
                self.recorder.comment(str(rejection))
                self.recorder.exchange(request, rejection.response)
            raise
        if self.recorder is not None:
            self.recorder.exchange(request, response)
        self.expected_cseq += 1
        return response

    def close(self) -> None:
        """Mark the authenticated Servus, if any, as offline."""
        if self.servus is not None:
            self.servus.set_offline()
            self.servus = None

    def _respond(
        self,
        status: Status,
        *,
        aviso_id: int | None = None,
        neutrino: bool = False,
        reason: str | None = None,
        body: str = "",
    ) -> Response:
        headers = {"CSeq": str(self.expected_cseq), "Agent": self.software_version}
        if aviso_id is not None:
            headers["Aviso-Id"] = str(aviso_id)
        if neutrino:
            headers["Neutrino-Interval"] = str(self.neutrino_interval)
        if reason is not None:
            headers["Reason"] = reason
        return Response(status, headers, body)

    def _dispatch(self, request: Request) -> Response:
        self._check_cseq(request)
        handler = self._handlers.get(request.method)
        if handler is None:
            raise RejectDatagram("Unknown method", self._respond(Status.METHOD_NOT_ALLOWED))
        return handler(request)

    def _check_cseq(self, request: Request) -> None:
        try:
            raw = request.header("CSeq")
        except StatementNotFound:
            raise RejectDatagram(
                "Missing CSeq", self._respond(Status.BAD_REQUEST, reason="Missing CSeq")
            ) from None
        try:
            provided = int(raw)
        except ValueError:
            provided = None
        if provided != self.expected_cseq:
            raise RejectDatagram(
                "Unexpected CSeq", self._respond(Status.BAD_REQUEST, reason="Unexpected CSeq")
            )

    def _require_servus(self) -> _Servus:
        if self.servus is None:
            raise RejectDatagram("Not authenticated", self._respond(Status.UNAUTHORIZED))
        return self.servus

    def _auth(self, request: Request) -> Response:
        try:
            authenticator = request.header("Authenticator")
        except StatementNotFound:
            authenticator = ""
        if not authenticator:
            raise RejectDatagram("Missing authenticator", self._respond(Status.UNAUTHORIZED))
        if len(authenticator) != UUID_PLAIN_LENGTH:
            raise RejectDatagram("Bad authenticator", self._respond(Status.UNAUTHORIZED))
        try:
            servus = self.directory.by_authenticator(authenticator)
        except ServusNotFound:
            log.info("[Dispatcher] Invalid authenticator provided: %s", authenticator)
            raise RejectDatagram(
                "Invalid authenticator", self._respond(Status.UNAUTHORIZED)
            ) from None
        self.servus = servus
        servus.set_online()
        try:
            servus.set_running_since(parse_timestamp(request.header("Running-Since")))
        except StatementNotFound:
            pass
        if not servus.enabled:
            log.info("[Dispatcher] Disabled servus tries to connect: %s", servus.token)
            raise RejectDatagram("Servus disabled", self._respond(Status.FORBIDDEN))
        log.info('[Dispatcher] Authenticated servus "%s"', servus.title)
        return self._respond(Status.OK, neutrino=True)

    def _setup(self, request: Request) -> Response:
        servus = self._require_servus()
        log.info('[Dispatcher] Servus "%s" requested configuration', servus.title)
        try:
            configuration = servus.configuration_as_json()
        except Exception:
            raise RejectDatagram(
                "Bad servus configuration", self._respond(Status.NOT_ACCEPTABLE)
            ) from None
        return self._respond(Status.OK, neutrino=True, body=configuration)

    def _continue(self, request: Request) -> Response:
        servus = self._require_servus()
        log.debug("[Dispatcher] %s from servus \"%s\"", request.method, servus.title)
        return self._respond(Status.CONTINUE, neutrino=True)

    def _aviso(self, request: Request) -> Response:
        servus = self._require_servus()
        try:
            aviso_id = int(request.header("Aviso-Id"))
            timestamp = parse_timestamp(request.header("Timestamp"))
            severity = int(request.header("Severity"))
            originator = request.header("Originator")
            if not originator:
                raise ValueError("Empty 'Originator'")
            if not request.payload:
                raise ValueError("Missing payload")
            payload = request.payload.decode("utf-8", errors="replace")
            self.directory.enqueue_fabula(
                timestamp, servus.servus_id, originator, severity, payload
            )
            response = self._respond(Status.CREATED, aviso_id=aviso_id, neutrino=True)
            if self.on_aviso is not None:
                self.on_aviso()
            return response
        except Exception as error:
            log.error("[Dispatcher] Cannot process aviso: %s", error)
            return self._respond(Status.NOT_ACCEPTABLE, neutrino=True)

    def _sensor_reading(
        self,
        request: Request,
        field_name: str,
        notice: Callable[[datetime, str, float], None],
    ) -> Response:
        try:
            aviso_id = int(request.header("Aviso-Id"))
            timestamp = parse_timestamp(request.header("Timestamp"))
            sensor_token = request.header("Sensor-Token")
            value = float(request.header(field_name))
            notice(timestamp, sensor_token, value)
            return self._respond(Status.CREATED, aviso_id=aviso_id, neutrino=True)
        except Exception as error:
            log.error("[Dispatcher] Cannot process %s: %s", request.method, error)
            return self._respond(Status.NOT_ACCEPTABLE, neutrino=True)

    def _dht_humidity(self, request: Request) -> Response:
        return self._sensor_reading(request, "Humidity", self.directory.notice_dht_humidity)

    def _dht_temperature(self, request: Request) -> Response:
        return self._sensor_reading(
            request, "Temperature", self.directory.notice_dht_temperature
        )

    def _ds_temperature(self, request: Request) -> Response:
        return self._sensor_reading(
            request, "Temperature", self.directory.notice_ds_temperature
        )