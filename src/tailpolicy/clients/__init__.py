from tailpolicy.clients.base import BaseHTTPClient, PermanentHTTPError, RetryableHTTPError
from tailpolicy.clients.tailscale import TailscaleClient

__all__ = ["BaseHTTPClient", "PermanentHTTPError", "RetryableHTTPError", "TailscaleClient"]
