from .sse import SessionConnection, SseSessionTransport

__all__ = ["SessionConnection", "SseSessionTransport"]
