from proxy_dispatch.clients.http_client import HTTPClientPool, close_http_clients, get_http_client

__all__ = ["HTTPClientPool", "close_http_clients", "get_http_client"]
