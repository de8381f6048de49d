"""Request/response transports between the supervisor and the child."""

import abc

import httpx

from nodebridge.errors import BridgeUsageError

REQUEST_METHOD: str = "PATCH"


class Transport(abc.ABC):
    """Exchange one request string for one response string."""

    @abc.abstractmethod
    def connect(self, uri: str, timeout: float | None) -> None:
        """Prepare a reusable channel to ``uri``.

        :param uri: Endpoint URI.
        :param timeout: Seconds allowed per exchange, ``None`` disables the limit.
        """

    @abc.abstractmethod
    def send(self, data: str) -> str:
        """Send ``data`` and return the response body.

        :param data: Request body.
        :returns: Response body.
        """

    def close(self) -> None:
        """Release the channel."""


class HttpTransport(Transport):
    """HTTP transport backed by one reused :class:`httpx.Client`."""

    _client: httpx.Client | None
    _uri: str | None
    _mounted_transport: httpx.BaseTransport | None

    def __init__(self, transport: httpx.BaseTransport | None = None) -> None:
        """Initialize an unconnected transport.

        :param transport: Optional low-level httpx transport, mainly for tests.
        """
        self._client = None
        self._uri = None
        self._mounted_transport = transport

    @property
    def uri(self) -> str | None:
        """Return the connected endpoint URI.

        :returns: Endpoint URI, ``None`` before ``connect``.
        """
        return self._uri

    def connect(self, uri: str, timeout: float | None) -> None:
        """Create the HTTP client for ``uri``.

        :param uri: Endpoint URI.
        :param timeout: Seconds allowed per exchange, ``None`` or ``0`` disables the limit.
        """
        if timeout == 0:
            # A zero timeout would put the socket in non-blocking mode
            timeout = None
        self.close()
        self._uri = uri
        self._client = httpx.Client(
            timeout=httpx.Timeout(timeout),
            follow_redirects=False,
            trust_env=False,
            transport=self._mounted_transport,
        )

    def send(self, data: str) -> str:
        """Send one instruction body and return the response body.

        :param data: Request body.
        :returns: Response body.
        :raises BridgeUsageError: If called before ``connect`` or the body is not text.
        :raises httpx.HTTPStatusError: If the endpoint answers with a non-success status.
        :raises httpx.HTTPError: For connection failures and timeouts.
        """
        client: httpx.Client | None = self._client
        uri: str | None = self._uri
        if client is None or uri is None:
            raise BridgeUsageError("HttpTransport.connect() must be called before HttpTransport.send().")

        response: httpx.Response = client.request(
            REQUEST_METHOD,
            uri,
            content=data.encode("utf-8"),
            headers={"Content-Type": "application/json"},
        )
        response.raise_for_status()

        try:
            payload: str = response.content.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise BridgeUsageError("The HTTP response body is not valid UTF-8 text.") from exc
        return payload

    def close(self) -> None:
        """Close the HTTP client if one is open."""
        client: httpx.Client | None = self._client
        self._client = None
        if client is not None:
            client.close()
