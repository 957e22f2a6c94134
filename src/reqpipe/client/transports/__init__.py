from .httpx import HttpxTransport

__all__ = [
    'HttpxTransport',
]
