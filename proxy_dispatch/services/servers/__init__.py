from proxy_dispatch.services.servers.directory import (
    DEFAULT_SERVICE_URLS,
    ServerDirectory,
    default_servers,
    override_key,
)

__all__ = ["DEFAULT_SERVICE_URLS", "ServerDirectory", "default_servers", "override_key"]
