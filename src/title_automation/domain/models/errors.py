from __future__ import annotations


class AuthenticationError(RuntimeError):
    pass


class GraphApiError(RuntimeError):
    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status

    def __str__(self) -> str:
        base = super().__str__()
        if self.status is None:
            return base
        return f"{base} (HTTP {self.status})"


class TitleMetadataError(ValueError):
    pass
