"""
Client address resolution shared by the rate limiter and the access log.
"""

from starlette.requests import Request

UNKNOWN_CLIENT = "unknown"


def client_ip(request: Request, trust_forwarded: bool = False) -> str:
    """
    The peer address, or the left-most X-Forwarded-For entry (then
    X-Real-IP) when the service runs behind a trusted proxy.
    """
    if trust_forwarded:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            first = forwarded.split(",")[0].strip()
            if first:
                return first
        real_ip = request.headers.get("X-Real-IP")
        if real_ip and real_ip.strip():
            return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_CLIENT


def trusts_forwarded(request: Request) -> bool:
    container = getattr(request.app.state, "container", None)
    return bool(container and container.settings.trust_forwarded_headers)
