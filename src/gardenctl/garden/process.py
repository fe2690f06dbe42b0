"""Process Host transport: hijacked HTTP stream of JSON process payloads."""

from __future__ import annotations

import codecs
import json
import logging as py_logging
import os
import socket
import threading
from collections.abc import Callable
from contextlib import suppress
from typing import BinaryIO, cast

from typing_extensions import TypedDict

from gardenctl.errors import ContainerNotFoundError, TransportError
from gardenctl.garden.models import ProcessIO, ProcessStreamSource

logger = py_logging.getLogger(__name__)

Connector = Callable[[], socket.socket]

_READ_CHUNK = 1024
_MAX_HEADER_LINES = 100


class ProcessPayload(TypedDict, total=False):
    process_id: str
    source: int
    data: str
    exit_status: int
    error: str


def connect_socket(network: str, target: str, timeout: float | None = None) -> socket.socket:
    try:
        if network == "unix":
            sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
            sock.settimeout(timeout)
            sock.connect(target)
            return sock
        host, _, port = target.rpartition(":")
        if not host or not port.isdigit():
            raise TransportError(
                f"Invalid Garden target: {target}",
                hint="Use host:port for tcp targets.",
            )
        return socket.create_connection((host.strip("[]"), int(port)), timeout=timeout)
    except OSError as exc:
        raise TransportError(
            f"Could not connect to Garden at {target}",
            hint=str(exc) or "Check that the Garden server is running.",
        ) from exc


def encode_payload(payload: ProcessPayload) -> bytes:
    return json.dumps(payload, separators=(",", ":")).encode("utf-8") + b"\n"


def decode_payload(line: bytes) -> ProcessPayload:
    try:
        decoded = json.loads(line.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise TransportError(
            "Garden sent a malformed process payload.",
            hint="Check that the client and server versions match.",
        ) from exc
    if not isinstance(decoded, dict):
        raise TransportError(
            "Garden sent an unexpected process payload.",
            hint="Check that the client and server versions match.",
        )
    return cast(ProcessPayload, decoded)


def _read_response_head(reader: BinaryIO) -> tuple[int, dict[str, str]]:
    status_line = reader.readline()
    parts = status_line.decode("latin-1").split(None, 2)
    if len(parts) < 2 or not parts[0].startswith("HTTP/") or not parts[1].isdigit():
        raise TransportError(
            "Garden returned an invalid HTTP response.",
            hint="Check that the target points at a Garden server.",
        )
    headers: dict[str, str] = {}
    for _ in range(_MAX_HEADER_LINES):
        line = reader.readline()
        if line in (b"\r\n", b"\n", b""):
            break
        name, _, value = line.decode("latin-1").partition(":")
        headers[name.strip().lower()] = value.strip()
    return int(parts[1]), headers


def _error_message(body: bytes) -> str:
    text = body.decode("utf-8", errors="replace").strip()
    with suppress(json.JSONDecodeError):
        parsed = json.loads(text)
        if isinstance(parsed, dict) and isinstance(parsed.get("message"), str):
            return parsed["message"]
    return text


class ProcessStream:
    """Bidirectional payload stream over one hijacked connection."""

    def __init__(self, sock: socket.socket) -> None:
        self._sock = sock
        self._reader = sock.makefile("rb")
        self._write_lock = threading.Lock()
        self._closed = False

    @classmethod
    def open(
        cls,
        connect: Connector,
        path: str,
        body: dict[str, object],
        *,
        handle: str = "",
    ) -> ProcessStream:
        sock = connect()
        stream = cls(sock)
        try:
            stream._request(path, body, handle=handle)
        except BaseException:
            stream.close()
            raise
        return stream

    def _request(self, path: str, body: dict[str, object], *, handle: str = "") -> None:
        encoded = json.dumps(body).encode("utf-8")
        head = (
            f"POST {path} HTTP/1.1\r\n"
            "Host: api\r\n"
            "Content-Type: application/json\r\n"
            f"Content-Length: {len(encoded)}\r\n"
            "Connection: Upgrade\r\n"
            "Upgrade: tcp\r\n"
            "\r\n"
        ).encode("latin-1")
        try:
            self._sock.sendall(head + encoded)
            status, headers = _read_response_head(self._reader)
        except OSError as exc:
            raise TransportError(
                "Failed to start remote process.",
                hint=str(exc) or "Check the connection to the Garden server.",
            ) from exc

        if status >= 400:
            length = headers.get("content-length", "")
            body_bytes = self._reader.read(int(length)) if length.isdigit() else b""
            message = _error_message(body_bytes) or f"HTTP {status}"
            if status == 404 and handle:
                raise ContainerNotFoundError(f"Container not found: {handle} ({message})")
            raise TransportError(f"Garden refused to run process: {message}")
        # The connection now carries payloads in both directions.
        self._sock.settimeout(None)

    def send(self, payload: ProcessPayload) -> None:
        with self._write_lock:
            if self._closed:
                raise TransportError("Process stream is closed.")
            try:
                self._sock.sendall(encode_payload(payload))
            except OSError as exc:
                raise TransportError(
                    "Failed to send data to remote process.",
                    hint=str(exc) or "Check the connection to the Garden server.",
                ) from exc

    def receive(self) -> ProcessPayload | None:
        try:
            line = self._reader.readline()
        except OSError as exc:
            if self._closed:
                return None
            raise TransportError(
                "Lost connection to remote process.",
                hint=str(exc) or "Check the connection to the Garden server.",
            ) from exc
        if not line:
            return None
        return decode_payload(line)

    def close(self) -> None:
        with self._write_lock:
            if self._closed:
                return
            self._closed = True
        with suppress(OSError):
            self._sock.shutdown(socket.SHUT_RDWR)
        with suppress(OSError):
            self._reader.close()
        with suppress(OSError):
            self._sock.close()


def _read_chunk(stream: BinaryIO) -> bytes:
    try:
        fd = stream.fileno()
    except (AttributeError, OSError, ValueError):
        reader = getattr(stream, "read1", None) or stream.read
        return reader(_READ_CHUNK)
    return os.read(fd, _READ_CHUNK)


def _write_chunk(stream: BinaryIO | None, text: str) -> None:
    if stream is None or not text:
        return
    # JSON may carry lone surrogates; they must not stop the output pump.
    stream.write(text.encode("utf-8", errors="replace"))
    stream.flush()


class Process:
    """Remote process handle; stdio is pumped on background threads."""

    def __init__(self, process_id: str, stream: ProcessStream, io: ProcessIO) -> None:
        self.id = process_id
        self._stream = stream
        self._io = io
        self._exited = threading.Event()
        self._exit_status: int | None = None
        self._error: TransportError | None = None
        self._output_thread = threading.Thread(
            target=self._pump_output,
            name=f"gardenctl-output-{process_id}",
            daemon=True,
        )
        self._input_thread: threading.Thread | None = None
        if io.stdin is not None:
            self._input_thread = threading.Thread(
                target=self._pump_input,
                args=(io.stdin,),
                name=f"gardenctl-input-{process_id}",
                daemon=True,
            )

    @classmethod
    def attach(cls, stream: ProcessStream, io: ProcessIO) -> Process:
        first = stream.receive()
        if first is None:
            stream.close()
            raise TransportError("Garden closed the connection before the process started.")
        error = first.get("error")
        if isinstance(error, str) and error:
            stream.close()
            raise TransportError(f"Remote process failed to start: {error}")
        process_id = first.get("process_id")
        if not isinstance(process_id, str) or not process_id:
            stream.close()
            raise TransportError("Garden did not report a process id.")
        process = cls(process_id, stream, io)
        process._start()
        logger.debug("Attached to remote process id=%s", process_id)
        return process

    def _start(self) -> None:
        self._output_thread.start()
        if self._input_thread is not None:
            self._input_thread.start()

    def _pump_output(self) -> None:
        try:
            while True:
                payload = self._stream.receive()
                if payload is None:
                    self._fail(TransportError("Connection closed before the remote process exited."))
                    return
                self._dispatch(payload)
                if self._exited.is_set():
                    return
        except TransportError as exc:
            self._fail(exc)
        except (OSError, ValueError) as exc:
            self._fail(TransportError("Failed to write remote output locally.", hint=str(exc)))
        except Exception as exc:
            logger.exception("Output pump stopped unexpectedly")
            self._fail(TransportError("Remote output forwarding stopped.", hint=str(exc)))
        finally:
            # wait() must never block once this thread is gone.
            self._fail(TransportError("Remote output forwarding stopped."))

    def _dispatch(self, payload: ProcessPayload) -> None:
        error = payload.get("error")
        if isinstance(error, str) and error:
            self._fail(TransportError(f"Remote process error: {error}"))
            return
        data = payload.get("data")
        if isinstance(data, str) and data:
            source = payload.get("source")
            if source == ProcessStreamSource.STDOUT:
                _write_chunk(self._io.stdout, data)
            elif source == ProcessStreamSource.STDERR:
                _write_chunk(self._io.stderr, data)
        exit_status = payload.get("exit_status")
        if isinstance(exit_status, int) and not isinstance(exit_status, bool):
            self._exit_status = exit_status
            self._exited.set()

    def _pump_input(self, stdin: BinaryIO) -> None:
        decoder = codecs.getincrementaldecoder("utf-8")("replace")
        try:
            while not self._exited.is_set():
                chunk = _read_chunk(stdin)
                if not chunk:
                    tail = decoder.decode(b"", final=True)
                    if tail:
                        self._send_stdin(tail)
                    self._stream.send({"process_id": self.id, "source": int(ProcessStreamSource.STDIN)})
                    return
                text = decoder.decode(chunk)
                if text:
                    self._send_stdin(text)
        except (TransportError, OSError, ValueError) as exc:
            if not self._exited.is_set():
                logger.debug("stdin forwarding stopped: %s", exc)

    def _send_stdin(self, text: str) -> None:
        self._stream.send(
            {
                "process_id": self.id,
                "source": int(ProcessStreamSource.STDIN),
                "data": text,
            }
        )

    def _fail(self, error: TransportError) -> None:
        if self._exited.is_set():
            return
        self._error = error
        self._exited.set()

    def wait(self) -> int:
        self._exited.wait()
        self._output_thread.join()
        self._stream.close()
        if self._error is not None:
            raise self._error
        assert self._exit_status is not None
        logger.debug("Remote process id=%s exited status=%s", self.id, self._exit_status)
        return self._exit_status
