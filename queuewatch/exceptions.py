from typing import Optional


class QueueWatchError(Exception):
    pass


class RemoteError(QueueWatchError):
    def __init__(self, status: int, body: str = "", path: Optional[str] = None):
        self.status = status
        self.body = body
        self.path = path
        where = f" for {path}" if path else ""
        detail = f": {body.strip()[:200]}" if body and body.strip() else ""
        super().__init__(f"HTTP {status}{where}{detail}")


class DecodeError(QueueWatchError):
    pass


class NetworkError(QueueWatchError):
    pass


class InvalidActionError(QueueWatchError):
    pass


class ConfigurationError(QueueWatchError):
    pass
