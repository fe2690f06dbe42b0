"""Garden container lifecycle client."""

from __future__ import annotations

import http.client
import json
import logging as py_logging
from collections.abc import Mapping
from typing import Protocol
from urllib.parse import quote, urlencode

from gardenctl.config import ClientConfig
from gardenctl.errors import ContainerNotFoundError, TransportError
from gardenctl.garden.models import ContainerSpec, ProcessIO, ProcessSpec
from gardenctl.garden.process import Connector, Process, ProcessStream, connect_socket

logger = py_logging.getLogger(__name__)

HttpResponse = tuple[int, str]


class HttpRequester(Protocol):
    def __call__(
        self,
        method: str,
        path: str,
        body: bytes | None,
        headers: dict[str, str],
    ) -> HttpResponse: ...


class _SocketHTTPConnection(http.client.HTTPConnection):
    def __init__(self, connect: Connector, timeout: float) -> None:
        super().__init__("api", timeout=timeout)
        self._connect = connect

    def connect(self) -> None:
        self.sock = self._connect()


def _socket_requester(connect: Connector, timeout: float) -> HttpRequester:
    def request(method: str, path: str, body: bytes | None, headers: dict[str, str]) -> HttpResponse:
        connection = _SocketHTTPConnection(connect, timeout)
        try:
            connection.request(method, path, body=body, headers=headers)
            response = connection.getresponse()
            payload = response.read().decode("utf-8", errors="replace")
            return response.status, payload
        except (OSError, http.client.HTTPException) as exc:
            raise TransportError(
                "Garden API request failed.",
                hint=str(exc) or "Check that the Garden server is running.",
            ) from exc
        finally:
            connection.close()

    return request


def _extract_message(payload: str) -> str:
    try:
        parsed = json.loads(payload)
    except json.JSONDecodeError:
        return payload.strip()
    if isinstance(parsed, dict):
        message = parsed.get("message")
        if isinstance(message, str):
            return message
    return payload.strip()


def _container_path(handle: str, suffix: str = "") -> str:
    return f"/containers/{quote(handle, safe='')}{suffix}"


class Container:
    def __init__(self, client: GardenClient, handle: str) -> None:
        self._client = client
        self._handle = handle

    def handle(self) -> str:
        return self._handle

    def info(self) -> dict[str, object]:
        payload = self._client._request_json("GET", _container_path(self._handle, "/info"), handle=self._handle)
        return payload if isinstance(payload, dict) else {}

    def run(self, spec: ProcessSpec, io: ProcessIO) -> Process:
        logger.debug("Running process path=%s user=%s container=%s", spec.path, spec.user, self._handle)
        stream = ProcessStream.open(
            self._client.connector,
            _container_path(self._handle, "/processes"),
            spec.to_dict(),
            handle=self._handle,
        )
        return Process.attach(stream, io)


class GardenClient:
    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        requester: HttpRequester | None = None,
        connect: Connector | None = None,
    ) -> None:
        self.config = config or ClientConfig()
        timeout = float(self.config.timeout_seconds)
        self.connector: Connector = connect or (
            lambda: connect_socket(self.config.network, self.config.target, timeout)
        )
        self._requester = requester or _socket_requester(self.connector, timeout)

    def _request(
        self,
        method: str,
        path: str,
        payload: object | None = None,
        *,
        handle: str = "",
    ) -> str:
        body = None
        headers: dict[str, str] = {}
        if payload is not None:
            body = json.dumps(payload).encode("utf-8")
            headers["Content-Type"] = "application/json"
        logger.debug("Garden request method=%s path=%s", method, path)
        status, text = self._requester(method, path, body, headers)
        if status == 404 and handle:
            raise ContainerNotFoundError(f"Container not found: {handle}")
        if status >= 400:
            message = _extract_message(text) or f"HTTP {status}"
            logger.error("Garden request failed method=%s path=%s status=%s", method, path, status)
            raise TransportError(f"Garden API error ({status}): {message}")
        return text

    def _request_json(
        self,
        method: str,
        path: str,
        payload: object | None = None,
        *,
        handle: str = "",
    ) -> object:
        text = self._request(method, path, payload, handle=handle)
        if not text.strip():
            return {}
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise TransportError(
                "Garden API returned invalid JSON.",
                hint="Check that the target points at a Garden server.",
            ) from exc

    def ping(self) -> None:
        self._request("GET", "/ping")

    def list(self, properties: Mapping[str, str] | None = None) -> list[str]:
        path = "/containers"
        if properties:
            path = f"{path}?{urlencode(sorted(properties.items()))}"
        payload = self._request_json("GET", path)
        handles = payload.get("handles") if isinstance(payload, dict) else None
        if not isinstance(handles, list):
            return []
        return [item for item in handles if isinstance(item, str)]

    def create(self, spec: ContainerSpec) -> Container:
        payload = self._request_json("POST", "/containers", spec.to_dict())
        handle = payload.get("handle") if isinstance(payload, dict) else None
        if not isinstance(handle, str) or not handle:
            raise TransportError("Garden did not return a container handle.")
        logger.info("Created container handle=%s", handle)
        return Container(self, handle)

    def container(self, handle: str) -> Container:
        return Container(self, handle)

    def lookup(self, handle: str) -> Container:
        container = self.container(handle)
        container.info()
        return container

    def destroy(self, handle: str) -> None:
        self._request("DELETE", _container_path(handle), handle=handle)
        logger.info("Destroyed container handle=%s", handle)
