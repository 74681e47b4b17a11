"""
HTTP client for the RC guidance server API.

Endpoints:
- POST /api/initialize  form fields describing the session and calibration
- POST /api/image       multipart upload, single file field "image"
- GET  /api/get_times   JSON object of vehicle id -> time token
"""

import logging
from dataclasses import dataclass
from typing import Any

import requests

from .calibration import Calibration
from .results import TimingEntry, decode_times_payload

logger = logging.getLogger(__name__)

DEFAULT_PORT = 5000


class GuidanceClientError(Exception):
    """Raised when a request fails at the transport level or returns non-200."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class InvalidSessionInput(ValueError):
    """Raised when operator-entered session parameters are incomplete or invalid."""


@dataclass
class SessionParameters:
    """Operator-entered parameters for a tracking session."""

    server: str
    number_of_cars: str
    number_of_route_markers: str
    marker_size_cm: str

    @classmethod
    def from_form(
        cls,
        server: str,
        number_of_cars: str,
        number_of_route_markers: str,
        marker_size_cm: str,
    ) -> "SessionParameters":
        """
        Validate raw form input.

        Raises:
            InvalidSessionInput: If a field is blank or a count is not a number.
        """
        values = [
            v.strip()
            for v in (server, number_of_cars, number_of_route_markers, marker_size_cm)
        ]
        if any(not v for v in values):
            raise InvalidSessionInput("All fields are required")

        labels = ("Number of Vehicles", "Number of Route Markers", "Marker Size (cm)")
        for label, value in zip(labels, values[1:]):
            try:
                float(value)
            except ValueError:
                raise InvalidSessionInput(f"{label} must be a number") from None

        return cls(*values)

    def form_fields(self) -> dict[str, str]:
        return {
            "number_of_route_markers": self.number_of_route_markers,
            "number_of_cars": self.number_of_cars,
            "marker_size_cm": self.marker_size_cm,
        }


def build_base_url(server: str, port: int = DEFAULT_PORT) -> str:
    """
    Build the API base URL from an operator-entered address.

    A bare host gets ``http://`` and the default port; a value that already
    carries a scheme or port is kept as given.
    """
    server = server.strip().rstrip("/")
    if "://" not in server:
        host = server
        if ":" not in host:
            host = f"{host}:{port}"
        server = f"http://{host}"
    return server


class GuidanceClient:
    """
    Thin wrapper around a requests.Session for the guidance server.

    Usage:
        with GuidanceClient("192.168.1.20") as client:
            client.initialize(params, calibration)
            client.upload_image(jpeg_bytes)
            entries = client.get_times()
    """

    def __init__(self, server: str, port: int = DEFAULT_PORT, timeout: float = 5.0):
        """
        Initialize the client.

        Args:
            server: Server host/IP as entered by the operator.
            port: API port used when the address has none.
            timeout: Per-request timeout in seconds.
        """
        self.base_url = build_base_url(server, port)
        self.timeout = timeout
        self.session = requests.Session()

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        url = self._url(path)
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise GuidanceClientError(f"{method} {path} failed: {e}") from e

        if resp.status_code != 200:
            raise GuidanceClientError(
                f"{method} {path} returned {resp.status_code}",
                status_code=resp.status_code,
            )
        return resp

    def initialize(self, params: SessionParameters, calibration: Calibration) -> None:
        """Create a tracking session on the server."""
        data = params.form_fields()
        data.update(calibration.form_fields())
        self._request("POST", "/api/initialize", data=data)
        logger.info(
            f"Session initialized on {self.base_url}: "
            f"cars={params.number_of_cars}, markers={params.number_of_route_markers}"
        )

    def upload_image(
        self,
        image: bytes,
        filename: str = "frame.jpg",
        extra_fields: dict[str, str] | None = None,
    ) -> int:
        """
        Upload one JPEG frame.

        Args:
            image: Encoded JPEG bytes.
            filename: Filename reported in the multipart part.
            extra_fields: Optional additional form fields.

        Returns:
            HTTP status code (always 200, other codes raise).
        """
        files = {"image": (filename, image, "image/jpeg")}
        resp = self._request("POST", "/api/image", files=files, data=extra_fields)
        return resp.status_code

    def get_times(self) -> list[TimingEntry]:
        """
        Fetch the completion times for the current session.

        Raises:
            GuidanceClientError: On transport failure or non-200 status.
            ResultsFormatError: If the body is not a JSON object.
        """
        resp = self._request("GET", "/api/get_times")
        entries = decode_times_payload(resp.text)
        logger.info(f"Received {len(entries)} timing entries")
        return entries

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self.session.close()

    def __enter__(self) -> "GuidanceClient":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
