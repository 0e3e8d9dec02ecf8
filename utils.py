"""
Вспомогательные функции для работы с поддоменами.
"""

import ipaddress
import re
import sys
import time
from pathlib import Path
from typing import List, Optional, TextIO

from config import Config, ConfigurationError


_PRIVATE_NETWORKS = [ipaddress.ip_network(net) for net in Config.PRIVATE_NETWORKS]


def validate_domain(domain: str) -> bool:
    """
    Валидация имени домена.

    Args:
        domain: Имя домена для проверки

    Returns:
        True если домен валидный
    """
    if not domain or len(domain) > 253:  # RFC 1035 максимальная длина
        return False

    # Должен содержать хотя бы одну точку и TLD минимум 2 символа
    if '.' not in domain:
        return False

    if '..' in domain:
        return False

    if not re.match(r'^[a-z0-9._-]+$', domain, re.IGNORECASE):
        return False

    if domain.startswith('.') or domain.endswith('.'):
        return False
    if domain.startswith('-') or domain.endswith('-'):
        return False

    # TLD: буквы или IDNA A-label (xn--p1ai для .рф)
    tld = domain.split('.')[-1]
    if len(tld) < 2:
        return False
    if not (tld.isalpha() or re.match(r'^xn--[a-z0-9-]+$', tld, re.IGNORECASE)):
        return False

    return True


def normalize_word(word: str) -> Optional[str]:
    """Приводит слово словаря к метке поддомена или возвращает None."""
    word = word.strip().lower()

    # Пропускаем пустые строки и комментарии
    if not word or word.startswith('#'):
        return None

    if len(word) >= 64:  # RFC ограничение
        return None

    if not all(c.isalnum() or c in '-_.' for c in word):
        return None
    if word.startswith('.') or word.endswith('.') or '..' in word:
        return None

    return word


def load_wordlist(filepath: str) -> List[str]:
    """
    Загрузка словаря с дедупликацией.

    Порядок слов сохраняется: при повторе остается первое вхождение.

    Args:
        filepath: Путь к файлу словаря

    Returns:
        Список уникальных поддоменов в порядке файла

    Raises:
        ConfigurationError: файл не найден или не читается
    """
    path = Path(filepath)
    if not path.is_file():
        raise ConfigurationError(f"Wordlist file not found: '{filepath}'")

    words: List[str] = []
    seen = set()

    try:
        with open(path, 'r', encoding='utf-8', errors='ignore') as f:
            for line in f:
                word = normalize_word(line)
                if word is None or word in seen:
                    continue
                seen.add(word)
                words.append(word)
    except OSError as e:
        raise ConfigurationError(f"Cannot read wordlist '{filepath}': {e}") from e

    return words


def is_private_address(address: str) -> bool:
    """
    Проверка, что адрес относится к частной/внутренней сети.

    IPv4-mapped IPv6 адреса проверяются по своему IPv4. Все, что не
    разбирается как IP (например, цель CNAME), считается не частным.

    Args:
        address: IP-адрес в текстовом виде

    Returns:
        True если адрес в одной из Config.PRIVATE_NETWORKS
    """
    try:
        ip = ipaddress.ip_address(address.strip())
    except (ValueError, AttributeError):
        return False

    if ip.version == 6 and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped

    return any(ip in network for network in _PRIVATE_NETWORKS
               if network.version == ip.version)


def print_banner(stream: Optional[TextIO] = None):
    """Вывод баннера"""
    print(Config.BANNER, file=stream or sys.stderr)


def format_time(seconds: float) -> str:
    """
    Форматирование времени

    Args:
        seconds: Время в секундах

    Returns:
        Отформатированная строка
    """
    if seconds < 60:
        return f"{seconds:.2f}s"
    elif seconds < 3600:
        minutes = int(seconds // 60)
        secs = seconds % 60
        return f"{minutes}m {secs:.0f}s"
    else:
        hours = int(seconds // 3600)
        minutes = int((seconds % 3600) // 60)
        return f"{hours}h {minutes}m"


class ProgressTracker:
    """
    Трекер прогресса сканирования.

    Счетчик увеличивается на каждое отправленное слово; строка статуса
    перерисовывается на месте через возврат каретки.
    """

    def __init__(self, total: int, stream: Optional[TextIO] = None, enabled: bool = True):
        self.total = total
        self.checked = 0
        self.current: Optional[str] = None
        self.start_time: Optional[float] = None
        self.enabled = enabled
        self.stream = stream or sys.stderr
        self._last_width = 0

    def start(self):
        """Запуск трекера"""
        self.start_time = time.time()
        self.checked = 0

    def increment(self, label: str):
        """Увеличение счетчика"""
        if self.start_time is None:
            self.start()
        self.checked += 1
        self.current = label

        if self.enabled:
            self.print_progress()

    def status_line(self) -> str:
        """Строка статуса: N of Total, текущее слово, скорость, ETA"""
        line = f"[*] {self.checked} of {self.total} | probing {self.current}"

        elapsed = time.time() - self.start_time if self.start_time else 0
        if elapsed > 0:
            rate = self.checked / elapsed
            eta = format_time((self.total - self.checked) / rate) if rate > 0 else "N/A"
            line += f" | Rate: {rate:.0f} req/s | ETA: {eta}"

        return line

    def print_progress(self):
        """Вывод прогресса"""
        line = self.status_line()
        padding = ' ' * max(0, self._last_width - len(line))
        self._last_width = len(line)
        self.stream.write(f"\r{line}{padding}")
        self.stream.flush()

    def clear(self):
        """Стирает строку статуса, чтобы строки результатов не склеивались с ней"""
        if self.enabled and self._last_width:
            self.stream.write(f"\r{' ' * self._last_width}\r")
            self.stream.flush()
            self._last_width = 0

    def stop(self):
        """Остановка трекера"""
        if self.enabled and self.checked:
            self.stream.write("\n")
            self.stream.flush()
