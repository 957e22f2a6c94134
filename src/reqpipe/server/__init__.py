from reqpipe.server.app import ProxyApp

__all__ = ["ProxyApp"]
