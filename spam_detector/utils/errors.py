from __future__ import annotations

from fastapi.responses import JSONResponse


class SpamDetectorError(Exception):
    pass


class ConfigurationError(SpamDetectorError):
    pass


class UninitializedScopeError(ConfigurationError):
    def __init__(self, scope_key: str):
        super().__init__(f"Scope hasn't been initialized: {scope_key!r}")
        self.scope_key = scope_key


class UnidentifiedStandardError(SpamDetectorError):
    def __init__(self, address: str, reason: str = "no token interface found"):
        super().__init__(f"Cannot identify token standard of {address}: {reason}")
        self.address = address


class RpcError(SpamDetectorError):
    pass


class CallRevertedError(RpcError):
    """eth_call reverted. Deterministic, so never retried."""


class ProviderPoolExhaustedError(SpamDetectorError):
    pass


class TokenListUnavailableError(SpamDetectorError):
    pass


def error_response(
    status_code: int, message: str, received_body: dict | None = None
) -> JSONResponse:
    content: dict = {"error": message}
    if received_body is not None:
        content["received_body"] = received_body
    return JSONResponse(status_code=status_code, content=content)
