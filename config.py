"""
Конфигурация для subdomain finder.

Содержит настройки по умолчанию для DNS-серверов, стратегий резолва,
параметры производительности, формат вывода и встроенный словарь.
"""

from typing import Dict, List


class ConfigurationError(ValueError):
    """Некорректные параметры запуска (домен, -j, DNS-сервер, словарь)."""


class Config:
    """Настройки по умолчанию для subdomain finder."""

    # Наборы DNS-серверов, доступные по имени
    NAMESERVER_PRESETS: Dict[str, List[str]] = {
        'google': ['8.8.8.8', '8.8.4.4'],
        'cloudflare': ['1.1.1.1', '1.0.0.1'],
        'quad9': ['9.9.9.9', '149.112.112.112'],
    }
    DEFAULT_NAMESERVER: str = 'google'
    DEFAULT_DNS_PORT: int = 53

    # Стратегии выбора семейства адресов: короткие имена CLI -> канонические
    STRATEGIES: Dict[str, str] = {
        'both': 'both',
        '4': 'v4-only',
        '6': 'v6-only',
        '4f': 'v4-then-v6',
        '6f': 'v6-then-v4',
        'v4-only': 'v4-only',
        'v6-only': 'v6-only',
        'v4-then-v6': 'v4-then-v6',
        'v6-then-v4': 'v6-then-v4',
    }
    DEFAULT_STRATEGY: str = '4f'

    # Параметры производительности
    DEFAULT_CONCURRENT: int = 1
    DEFAULT_TIMEOUT: float = 2.0
    MIN_TIMEOUT: float = 0.1

    # Проверка wildcard
    WILDCARD_PROBES: int = 5
    WILDCARD_MIN_HITS: int = 3
    WILDCARD_LABEL_LENGTH: int = 20

    # Вывод: ширина колонок и заголовки
    NAME_WIDTH: int = 40
    RECORD_WIDTH: int = 10
    LOCAL_WIDTH: int = 10
    COLUMN_SEPARATOR: str = ' | '
    HEADERS = ('Name', 'Record', 'Local ip')

    # Частные сети (RFC 1918, loopback, link-local, ULA)
    PRIVATE_NETWORKS: List[str] = [
        '10.0.0.0/8',
        '172.16.0.0/12',
        '192.168.0.0/16',
        '127.0.0.0/8',
        '169.254.0.0/16',
        '::1/128',
        'fe80::/10',
        'fc00::/7',
    ]

    # Встроенный словарь (используется, если -w не указан)
    DEFAULT_WORDLIST: List[str] = [
        'www', 'mail', 'ftp', 'localhost', 'webmail', 'smtp', 'pop', 'ns1',
        'webdisk', 'ns2', 'cpanel', 'whm', 'autodiscover', 'autoconfig', 'm',
        'imap', 'test', 'ns', 'blog', 'pop3', 'dev', 'www2', 'admin', 'forum',
        'news', 'vpn', 'ns3', 'mail2', 'new', 'mysql', 'old', 'lists',
        'support', 'mobile', 'mx', 'static', 'docs', 'beta', 'shop', 'sql',
        'secure', 'demo', 'cp', 'calendar', 'wiki', 'web', 'media', 'email',
        'images', 'img', 'www1', 'intranet', 'portal', 'video', 'sip', 'dns2',
        'api', 'cdn', 'stats', 'dns1', 'ns4', 'www3', 'dns', 'search',
        'staging', 'server', 'mx1', 'chat', 'wap', 'my', 'svn', 'mail1',
        'sites', 'proxy', 'ads', 'host', 'crm', 'cms', 'backup', 'mx2',
        'lyncdiscover', 'info', 'apps', 'download', 'remote', 'db', 'forums',
        'store', 'relay', 'files', 'newsletter', 'app', 'live', 'owa', 'en',
        'start', 'sms', 'office', 'exchange', 'ipv4', 'git', 'gitlab',
        'jenkins', 'jira', 'confluence', 'grafana', 'kibana', 'monitor',
        'prod', 'stage', 'uat', 'qa', 'internal', 'gateway', 'gw', 'auth',
        'sso', 'login', 'vpn2', 'owa2', 'status', 'assets', 'cloud', 'k8s',
    ]

    # Вывод
    BANNER: str = """
╔═══════════════════════════════════════════════════════════╗
║                                                           ║
║         Bounded-Concurrency Subdomain Prober              ║
║                     Version 3.0                           ║
║                                                           ║
╚═══════════════════════════════════════════════════════════╝
    """
