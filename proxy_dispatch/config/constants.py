"""
默认常量配置

所有可调参数的默认值集中在这里，运行时可通过环境变量覆盖（见 settings.py）。
"""


class HTTPDefaults:
    """HTTP 客户端默认配置"""

    CONNECT_TIMEOUT = 10.0
    READ_TIMEOUT = 300.0  # 生成类请求可能耗时较长
    WRITE_TIMEOUT = 60.0
    POOL_TIMEOUT = 10.0
    MAX_CONNECTIONS = 100
    KEEPALIVE_CONNECTIONS = 20
    KEEPALIVE_EXPIRY = 30.0


class DispatchDefaults:
    """
    尝试计划默认参数

    这些数值是可调配置，不是契约：
    - POOL_MAX_ELIGIBLE: 只有最新的 N 个共享池凭据被视为可用，更旧的视为过期
    - PRIMARY_POOL_SAMPLE: 当前服务器上随机抽取的共享池凭据数量
    - STRICT_FALLBACK_COUNT: 严格模式下追加的共享池兜底尝试数量
    - BACKUP_SERVER_COUNT: 备用服务器数量
    - BACKUP_POOL_SAMPLE: 每个备用服务器上抽取的共享池凭据数量
    """

    POOL_MAX_ELIGIBLE = 10
    PRIMARY_POOL_SAMPLE = 5
    STRICT_FALLBACK_COUNT = 5
    BACKUP_SERVER_COUNT = 2
    BACKUP_POOL_SAMPLE = 2

    # 日志中凭据只显示末尾字符数
    TOKEN_SUFFIX_LENGTH = 6
    # 非 JSON 响应在错误消息中保留的字符数
    RAW_BODY_PREVIEW_LENGTH = 100
    # 失败记录中摘要的最大长度
    SUMMARY_MAX_LENGTH = 100


class AdmissionDefaults:
    """生成槽位（准入控制）默认参数，最坏情况额外等待 BACKOFF * (MAX_ATTEMPTS - 1) 秒"""

    COOLDOWN_SECONDS = 10
    BACKOFF_SECONDS = 2.0
    MAX_ATTEMPTS = 3


class ServerDefaults:
    """代理服务器默认配置（参考部署：s1 ~ s10）"""

    SERVER_COUNT = 10
    SERVER_URL_TEMPLATE = "https://s{index}.monoklix.com"
    VEO_DEFAULT_URL = "https://veox.monoklix.com"
    IMAGEN_DEFAULT_URL = "https://gemx.monoklix.com"


class StorageKeys:
    """凭据存储 / 服务器选择使用的键名"""

    CURRENT_USER = "currentUser"
    POOL_TOKENS = "veoAuthTokens"
    SERVER_OVERRIDE_PREFIX = "selectedProxyServer."


class BatchDefaults:
    """批量生成默认参数"""

    SLOT_COUNT = 6
    STAGGER_SECONDS = 0.5
