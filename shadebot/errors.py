from __future__ import annotations


class ShadeBotError(Exception):
    pass


class FetchError(ShadeBotError):
    """Upstream fetch failed; no partial result is ever returned."""

    def __init__(self, code: str, *, operation: str | None = None, detail: str | None = None) -> None:
        super().__init__(code)
        self.code = code
        self.operation = operation
        self.detail = detail

    def __str__(self) -> str:
        parts = [self.code]
        if self.operation:
            parts.append(f"operation={self.operation}")
        if self.detail:
            parts.append(f"detail={self.detail}")
        return " ".join(parts)


class NetworkError(FetchError):
    def __init__(self, *, operation: str | None = None, detail: str | None = None) -> None:
        super().__init__("NETWORK_ERROR", operation=operation, detail=detail)


class HttpStatusError(FetchError):
    def __init__(self, status_code: int, *, operation: str | None = None, detail: str | None = None) -> None:
        super().__init__(f"HTTP_STATUS_{status_code}", operation=operation, detail=detail)
        self.status_code = status_code


class DecodeError(FetchError):
    def __init__(self, *, operation: str | None = None, detail: str | None = None) -> None:
        super().__init__("DECODE_ERROR", operation=operation, detail=detail)


class TokenNotFoundError(ShadeBotError):
    def __init__(self, symbol: str) -> None:
        super().__init__(f"TOKEN_NOT_FOUND:{symbol}")
        self.symbol = symbol
