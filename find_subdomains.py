#!/usr/bin/env python3
"""
Bounded-concurrency Subdomain Prober.

Асинхронный перебор поддоменов по словарю: для каждого слова резолвится
{word}.{domain}, найденные записи A/AAAA (и цепочка CNAME) пишутся в
консоль или файл с пометкой, является ли адрес частным.

Количество одновременных DNS-запросов ограничено параметром -j.
"""

import asyncio
import argparse
import ipaddress
import logging
import random
import re
import string
import sys
import time
from typing import Iterable, List, Optional, Set, Tuple

import dns.asyncresolver
import dns.exception
import dns.rdatatype
import dns.resolver

from config import Config, ConfigurationError
from outputs import OutputError, Outputter, Record, open_output
from utils import format_time, load_wordlist, print_banner, validate_domain


logger = logging.getLogger(__name__)

# Порядок запросов для каждой стратегии
STRATEGY_RDTYPES = {
    'both': ('A', 'AAAA'),
    'v4-only': ('A',),
    'v6-only': ('AAAA',),
    'v4-then-v6': ('A', 'AAAA'),
    'v6-then-v4': ('AAAA', 'A'),
}

RECORD_TYPES = {dns.rdatatype.A, dns.rdatatype.AAAA, dns.rdatatype.CNAME}
ADDRESS_RECORD_TYPES = ('A', 'AAAA')


def normalize_strategy(strategy: Optional[str]) -> str:
    """Короткое или полное имя стратегии -> каноническое имя."""
    value = (strategy or Config.DEFAULT_STRATEGY).strip().lower()
    try:
        return Config.STRATEGIES[value]
    except KeyError:
        choices = ', '.join(sorted(set(Config.STRATEGIES)))
        raise ConfigurationError(f"Unknown lookup strategy '{strategy}' (choose from: {choices})") from None


def parse_nameserver(value: Optional[str]) -> Tuple[List[str], int]:
    """
    Разбор параметра --dns.

    Допустимые значения: имя набора ('google', 'cloudflare', 'quad9'),
    IP-адрес, 'IP:PORT' или '[IPv6]:PORT'.

    Returns:
        (список адресов серверов, порт)
    """
    value = (value or Config.DEFAULT_NAMESERVER).strip()

    preset = Config.NAMESERVER_PRESETS.get(value.lower())
    if preset:
        return list(preset), Config.DEFAULT_DNS_PORT

    host, port = value, str(Config.DEFAULT_DNS_PORT)
    bracketed = re.match(r'^\[([0-9a-fA-F:.]+)\](?::(\d+))?$', value)
    if bracketed:
        host, port = bracketed.group(1), bracketed.group(2) or port
    elif value.count(':') == 1:
        host, port = value.split(':')

    try:
        ipaddress.ip_address(host)
    except ValueError:
        raise ConfigurationError(f"Invalid DNS server: '{value}'") from None

    if not port.isdigit() or not 0 < int(port) < 65536:
        raise ConfigurationError(f"Invalid DNS server port: '{value}'")

    return [host], int(port)


def build_resolver(nameserver: Optional[str] = None,
                   timeout: float = Config.DEFAULT_TIMEOUT) -> dns.asyncresolver.Resolver:
    """Асинхронный резолвер dnspython с выбранными серверами и таймаутом."""
    servers, port = parse_nameserver(nameserver)

    resolver = dns.asyncresolver.Resolver(configure=False)
    # порт задается до списка серверов: он применяется при их установке
    resolver.port = port
    resolver.nameservers = servers
    resolver.timeout = timeout
    resolver.lifetime = timeout
    return resolver


def records_from_answer(answer) -> List[Record]:
    """
    Записи A/AAAA/CNAME из секции ответа.

    Имена и цели CNAME возвращаются без завершающей точки.
    """
    records = []
    for rrset in answer.response.answer:
        if rrset.rdtype not in RECORD_TYPES:
            continue
        name = rrset.name.to_text(omit_final_dot=True)
        record_type = dns.rdatatype.to_text(rrset.rdtype)
        for rdata in rrset:
            address = rdata.to_text()
            if rrset.rdtype == dns.rdatatype.CNAME:
                address = address.rstrip('.')
            records.append(Record(name, record_type, address))
    return records


async def query_records(resolver, hostname: str, rdtype: str) -> List[Record]:
    answer = await resolver.resolve(hostname, rdtype)
    return records_from_answer(answer)


async def lookup_ip(resolver, hostname: str, strategy: str = 'v4-then-v6') -> List[Record]:
    """
    Резолв имени по стратегии выбора семейства адресов.

    'both' отправляет A и AAAA одновременно и успешен, если ответил хотя бы
    один запрос. Стратегии '*-then-*' переходят ко второму семейству только
    при ошибке первого; NXDOMAIN завершает поиск сразу.

    Args:
        resolver: Объект с корутиной resolve(qname, rdtype)
        hostname: Полное имя для резолва
        strategy: Каноническое имя стратегии

    Returns:
        Список записей (без повторов, в порядке ответа)

    Raises:
        dns.exception.DNSException: имя не резолвится
    """
    rdtypes = STRATEGY_RDTYPES[strategy]

    if strategy == 'both':
        results = await asyncio.gather(
            *(query_records(resolver, hostname, rdtype) for rdtype in rdtypes),
            return_exceptions=True,
        )
        records: List[Record] = []
        errors = []
        for result in results:
            if isinstance(result, BaseException):
                errors.append(result)
            else:
                records.extend(result)
        if records:
            return list(dict.fromkeys(records))
        if errors:
            raise errors[0]
        raise dns.resolver.NoAnswer()

    last_error: Optional[Exception] = None
    for rdtype in rdtypes:
        try:
            records = await query_records(resolver, hostname, rdtype)
        except dns.resolver.NXDOMAIN:
            raise
        except dns.exception.DNSException as e:
            last_error = e
            continue
        if records:
            return records

    if last_error is not None:
        raise last_error
    raise dns.resolver.NoAnswer()


def address_set(records: Iterable[Record]) -> Set[str]:
    return {record.address for record in records if record.record_type in ADDRESS_RECORD_TYPES}


class SubdomainFinder:
    """Перебор поддоменов с ограничением числа одновременных запросов"""

    def __init__(self,
                 domain: str,
                 nameserver: Optional[str] = None,
                 strategy: Optional[str] = None,
                 max_concurrent: int = Config.DEFAULT_CONCURRENT,
                 timeout: float = Config.DEFAULT_TIMEOUT,
                 verbose: bool = False,
                 filter_wildcard: bool = False,
                 resolver=None):
        """
        Инициализация сканера

        Args:
            domain: Целевой домен
            nameserver: Имя набора DNS-серверов или адрес сервера
            strategy: Стратегия выбора семейства адресов
            max_concurrent: Максимальное количество одновременных запросов (j)
            timeout: Таймаут для DNS-запросов
            verbose: Сообщать о неудачных запросах в лог
            filter_wildcard: Проверять wildcard DNS и отбрасывать его ответы
            resolver: Готовый резолвер (по умолчанию создается dnspython)

        Raises:
            ConfigurationError: некорректный домен, j, таймаут, стратегия или сервер
        """
        domain = (domain or '').lower().strip()
        if not validate_domain(domain):
            raise ConfigurationError(f"Invalid domain name: '{domain}'")

        if isinstance(max_concurrent, bool) or not isinstance(max_concurrent, int) or max_concurrent < 1:
            raise ConfigurationError("Concurrency (-j) must be a positive integer")

        if timeout < Config.MIN_TIMEOUT:
            raise ConfigurationError(f"Timeout must be at least {Config.MIN_TIMEOUT}s")

        self.domain = domain
        self.strategy = normalize_strategy(strategy)
        self.max_concurrent = max_concurrent
        self.timeout = timeout
        self.verbose = verbose
        self.filter_wildcard = filter_wildcard

        if resolver is None:
            self.nameservers, _ = parse_nameserver(nameserver)
            resolver = build_resolver(nameserver, timeout)
        else:
            self.nameservers = []
        self.resolver = resolver

        # Состояние запуска
        self.outstanding = 0
        self.max_outstanding = 0
        self.dispatched = 0
        self.results = 0
        self.output_error: Optional[OSError] = None
        self.wildcard_detected = False
        self.wildcard_addresses: Set[str] = set()

    def _report_failure(self, full_domain: str, reason: str):
        if self.verbose:
            logger.warning(f"{full_domain}: {reason}")

    async def check_wildcard(self) -> bool:
        """
        Проверка на wildcard DNS

        Returns:
            True если обнаружен wildcard
        """
        print("[*] Checking for wildcard DNS...", file=sys.stderr)

        alphabet = string.ascii_lowercase + string.digits
        test_domains = [
            f"{''.join(random.choices(alphabet, k=Config.WILDCARD_LABEL_LENGTH))}.{self.domain}"
            for _ in range(Config.WILDCARD_PROBES)
        ]

        wildcard_responses = []
        for test_domain in test_domains:
            try:
                records = await lookup_ip(self.resolver, test_domain, self.strategy)
            except dns.exception.DNSException:
                # Это нормально для случайных доменов
                continue
            except Exception as e:
                logger.debug(f"Wildcard probe for {test_domain} failed: {e}")
                continue
            addresses = address_set(records)
            if addresses:
                wildcard_responses.append(addresses)

        if len(wildcard_responses) >= Config.WILDCARD_MIN_HITS:
            first = wildcard_responses[0]
            if all(addresses == first for addresses in wildcard_responses[1:]):
                self.wildcard_detected = True
                self.wildcard_addresses = first
                print(f"[!] Wildcard DNS detected! IPs: {', '.join(sorted(first))}", file=sys.stderr)
                print("[*] Will filter out wildcard responses", file=sys.stderr)
                return True

        print("[+] No wildcard DNS detected", file=sys.stderr)
        return False

    async def resolve_subdomain(self, word: str) -> Optional[List[Record]]:
        """
        Резолв одного поддомена.

        Неудачный резолв - обычный случай (поддомена нет), поэтому ошибки
        не пробрасываются; с verbose они пишутся в лог.

        Args:
            word: Слово из словаря (без домена)

        Returns:
            Список записей или None если поддомен не существует
        """
        full_domain = f"{word}.{self.domain}"

        try:
            records = await lookup_ip(self.resolver, full_domain, self.strategy)
        except dns.resolver.NXDOMAIN:
            self._report_failure(full_domain, "NXDOMAIN")
            return None
        except dns.resolver.NoAnswer:
            self._report_failure(full_domain, "no address records")
            return None
        except dns.resolver.NoNameservers:
            self._report_failure(full_domain, "no nameservers responded")
            return None
        except dns.exception.Timeout:
            self._report_failure(full_domain, "timeout")
            return None
        except Exception as e:
            self._report_failure(full_domain, f"error resolving: {e}")
            return None

        if self.wildcard_detected and address_set(records) == self.wildcard_addresses:
            self._report_failure(full_domain, "wildcard response")
            return None

        return records

    def _record_output_error(self, error: OSError):
        if self.output_error is None:
            self.output_error = error
            logger.error(f"Writing results failed: {error}")

    async def check_subdomain(self, word: str, output: Outputter) -> None:
        """
        Одна задача резолва: ответ передается в приемник, ошибка записи
        запоминается и не прерывает остальные задачи.
        """
        records = await self.resolve_subdomain(word)
        if not records:
            return

        try:
            output.add_result(records)
        except OSError as e:
            self._record_output_error(e)
            return

        self.results += len(records)

    async def run(self, words: Iterable[str], output: Outputter) -> int:
        """
        Запуск сканирования

        Слова отправляются строго в порядке словаря; перед каждой отправкой
        цикл ждет свободного места (не более max_concurrent незавершенных
        запросов). Прогресс сообщается в момент отправки. В конце ожидаются
        все запущенные задачи.

        Args:
            words: Слова словаря
            output: Приемник результатов

        Returns:
            Количество записанных записей

        Raises:
            OutputError: запись в приемник не удалась во время сканирования
        """
        # Состояние предыдущего запуска не переносится
        self.outstanding = 0
        self.max_outstanding = 0
        self.dispatched = 0
        self.results = 0
        self.output_error = None

        if self.filter_wildcard:
            await self.check_wildcard()

        semaphore = asyncio.Semaphore(self.max_concurrent)
        pending: Set[asyncio.Future] = set()
        failures: List[BaseException] = []

        def on_done(task: asyncio.Future):
            self.outstanding -= 1
            pending.discard(task)
            semaphore.release()
            if not task.cancelled() and task.exception() is not None:
                failures.append(task.exception())

        try:
            for word in words:
                await semaphore.acquire()
                try:
                    output.report_progress(word)
                except OSError as e:
                    self._record_output_error(e)

                task = asyncio.ensure_future(self.check_subdomain(word, output))
                self.dispatched += 1
                self.outstanding += 1
                self.max_outstanding = max(self.max_outstanding, self.outstanding)
                pending.add(task)
                task.add_done_callback(on_done)

            if pending:
                await asyncio.gather(*list(pending), return_exceptions=True)
        except BaseException:
            for task in list(pending):
                task.cancel()
            await asyncio.gather(*list(pending), return_exceptions=True)
            raise

        if failures:
            raise failures[0]

        if self.output_error is not None:
            raise OutputError(f"Writing results failed: {self.output_error}") from self.output_error

        return self.results


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Bounded-concurrency subdomain prober',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Lookup strategies:
  both  both IPv4 and IPv6 records
  4     only IPv4 records
  6     only IPv6 records
  4f    IPv4 first, then IPv6
  6f    IPv6 first, then IPv4

Examples:
  %(prog)s -d example.com
  %(prog)s -d example.com -w wordlists/subdomains.txt -j 50 -t
  %(prog)s -d example.com -o results.txt --dns cloudflare -s both
  %(prog)s -d example.com --dns 192.168.1.1:5353 -v
        """
    )

    parser.add_argument('-d', '--domain',
                        required=True,
                        help='Target domain')

    parser.add_argument('-w', '--wordlist',
                        help='Path to wordlist file (built-in list if omitted)')

    parser.add_argument('-o', '--output',
                        default=None,
                        help='Output file (stdout if omitted)')

    parser.add_argument('-s', '--strategy',
                        default=Config.DEFAULT_STRATEGY,
                        help=f'Lookup IP strategy (default: {Config.DEFAULT_STRATEGY})')

    parser.add_argument('--dns',
                        default=Config.DEFAULT_NAMESERVER,
                        help="DNS server: IP[:PORT] or 'google', 'cloudflare', 'quad9' "
                             f"(default: {Config.DEFAULT_NAMESERVER})")

    parser.add_argument('-t', '--headers',
                        action='store_true',
                        help='Print table headers')

    parser.add_argument('-j', '--jobs',
                        type=int,
                        default=Config.DEFAULT_CONCURRENT,
                        help=f'Number of parallel requests (default: {Config.DEFAULT_CONCURRENT})')

    parser.add_argument('--timeout',
                        type=float,
                        default=Config.DEFAULT_TIMEOUT,
                        help=f'DNS timeout in seconds (default: {Config.DEFAULT_TIMEOUT})')

    parser.add_argument('--filter-wildcard',
                        action='store_true',
                        help='Detect wildcard DNS and drop matching answers')

    parser.add_argument('--no-progress',
                        action='store_true',
                        help='Do not display the progress line')

    parser.add_argument('-v', '--verbose',
                        action='store_true',
                        help='Report failed lookups')

    parser.add_argument('--no-banner',
                        action='store_true',
                        help='Disable banner')

    return parser


async def main(argv: Optional[List[str]] = None):
    """Главная функция"""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )

    if not args.no_banner:
        print_banner()

    try:
        if args.wordlist:
            words = load_wordlist(args.wordlist)
        else:
            words = list(Config.DEFAULT_WORDLIST)

        finder = SubdomainFinder(
            domain=args.domain,
            nameserver=args.dns,
            strategy=args.strategy,
            max_concurrent=args.jobs,
            timeout=args.timeout,
            verbose=args.verbose,
            filter_wildcard=args.filter_wildcard,
        )
    except ConfigurationError as e:
        print(f"[!] Error: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        output = open_output(args.output, args.headers, len(words),
                             show_progress=not args.no_progress)
    except OutputError as e:
        print(f"[!] Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"[*] Target domain: {finder.domain}", file=sys.stderr)
    print(f"[*] DNS servers: {', '.join(finder.nameservers)}", file=sys.stderr)
    print(f"[*] Strategy: {finder.strategy} | Parallel: {finder.max_concurrent} | "
          f"Words: {len(words)}", file=sys.stderr)

    start_time = time.time()
    try:
        with output:
            output.print_headers()
            found = await finder.run(words, output)
    except OutputError as e:
        print(f"[!] Error: {e}", file=sys.stderr)
        sys.exit(1)

    elapsed = time.time() - start_time
    print("=" * 60, file=sys.stderr)
    print(f"[*] Scan finished in {format_time(elapsed)}", file=sys.stderr)
    if elapsed > 0:
        print(f"[*] Average rate: {len(words) / elapsed:.0f} queries/second", file=sys.stderr)
    print(f"[*] Records found: {found}", file=sys.stderr)
    print("=" * 60, file=sys.stderr)


def cli():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print(file=sys.stderr)
        print("[!] Scan interrupted by user", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    cli()
