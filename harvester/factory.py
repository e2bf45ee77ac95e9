from __future__ import annotations

from typing import Any, Callable, Dict

from .transports import CurlTransport, RequestsTransport, Transport

_TRANSPORTS: Dict[str, Callable[..., Transport]] = {
    "requests": RequestsTransport,
    "curl": CurlTransport,
}


def transport_names() -> list[str]:
    return sorted(_TRANSPORTS)


def create_transport(name: str, **kwargs: Any) -> Transport:
    """Build the HTTP transport registered under ``name``.

    ``requests`` is the plain client; ``curl`` impersonates a browser TLS
    fingerprint for sites that block generic clients. Keyword arguments
    the chosen transport does not take (e.g. ``user_agent`` for ``curl``)
    are dropped."""
    try:
        factory = _TRANSPORTS[name]
    except KeyError:
        raise ValueError(f"Unknown transport: {name}") from None

    if factory is CurlTransport:
        kwargs.pop("user_agent", None)
    return factory(**kwargs)
