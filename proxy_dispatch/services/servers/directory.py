"""
代理服务器目录

- 一组固定的、可互换的代理服务器（参考部署 s1 ~ s10）
- 每个服务类型有独立的默认服务器和独立的用户选择（override）键
- 当前服务器在目录生命周期内只解析一次并缓存，除非显式切换
- 备用服务器随机排序，避免大量并发用户的故障转移集中到同一台
"""

from __future__ import annotations

import random
from collections.abc import Iterable, Mapping, MutableMapping, Sequence

from proxy_dispatch.config.constants import ServerDefaults, StorageKeys
from proxy_dispatch.core.enums import ServiceType
from proxy_dispatch.core.logger import logger
from proxy_dispatch.core.transport import normalize_base_url
from proxy_dispatch.models.dispatch import Server


def default_servers(count: int = ServerDefaults.SERVER_COUNT) -> list[Server]:
    return [
        Server(
            id=f"s{i}",
            name=f"S{i}",
            url=ServerDefaults.SERVER_URL_TEMPLATE.format(index=i),
        )
        for i in range(1, count + 1)
    ]


DEFAULT_SERVICE_URLS: dict[ServiceType, str] = {
    ServiceType.VEO: ServerDefaults.VEO_DEFAULT_URL,
    ServiceType.IMAGEN: ServerDefaults.IMAGEN_DEFAULT_URL,
}


def override_key(service_type: ServiceType | str) -> str:
    return f"{StorageKeys.SERVER_OVERRIDE_PREFIX}{ServiceType(service_type).value}"


class ServerDirectory:
    """
    服务器目录

    Args:
        servers: 已知服务器列表（备用服务器从这里选）
        defaults: 各服务类型的默认服务器 URL
        overrides: 用户选择的存储（键见 override_key）
        local_url: 本地开发代理，配置后所有服务类型都固定使用它
        rng: 随机源（测试中传入带种子的 random.Random）
    """

    def __init__(
        self,
        servers: Sequence[Server] | None = None,
        defaults: Mapping[ServiceType | str, str] | None = None,
        overrides: MutableMapping[str, str] | None = None,
        *,
        local_url: str | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.servers: list[Server] = list(servers) if servers is not None else default_servers()
        self.defaults = {
            ServiceType(service): url
            for service, url in (defaults if defaults is not None else DEFAULT_SERVICE_URLS).items()
        }
        self.overrides: MutableMapping[str, str] = overrides if overrides is not None else {}
        self.local_url = local_url
        self.rng = rng or random.Random()
        self._current: dict[ServiceType, Server] = {}

    def get_server(self, url: str) -> Server:
        """按 URL 查找已知服务器；未知 URL（例如自定义选择）返回临时 Server"""
        key = normalize_base_url(url)
        for server in self.servers:
            if server.key == key:
                return server
        return Server(id=key, name=key.split("://", 1)[-1], url=key)

    def current_server(self, service_type: ServiceType | str) -> Server:
        service = ServiceType(service_type)
        cached = self._current.get(service)
        if cached is not None:
            return cached

        if self.local_url:
            url = self.local_url
        else:
            url = self.overrides.get(override_key(service)) or self.defaults[service]
        server = self.get_server(url)
        self._current[service] = server
        logger.debug("[{}] 当前代理服务器: {}", service.value, server.url)
        return server

    def select_server(self, service_type: ServiceType | str, url: str) -> Server:
        """显式切换某个服务类型的当前服务器"""
        service = ServiceType(service_type)
        server = self.get_server(url)
        self.overrides[override_key(service)] = server.url
        self._current[service] = server
        logger.info("[{}] 已切换代理服务器: {}", service.value, server.url)
        return server

    def clear_selection(self, service_type: ServiceType | str) -> None:
        service = ServiceType(service_type)
        self.overrides.pop(override_key(service), None)
        self._current.pop(service, None)

    def alternate_servers(self, excluding: Server | Iterable[Server]) -> list[Server]:
        """除 excluding 以外的全部已知服务器，随机顺序"""
        excluded = [excluding] if isinstance(excluding, Server) else list(excluding)
        excluded_keys = {s.key for s in excluded}
        alternates = [s for s in self.servers if s.key not in excluded_keys]
        self.rng.shuffle(alternates)
        return alternates
