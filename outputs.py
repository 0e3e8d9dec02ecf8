"""
Приемники результатов: консоль и файл.

Оба приемника разделяются всеми задачами резолва одновременно, поэтому
каждый вызов add_result / report_progress выполняется под одной блокировкой:
строки одного вызова пишутся целиком, счетчик прогресса не теряет шагов.
"""

import sys
import threading
from pathlib import Path
from typing import Iterable, NamedTuple, Optional, Protocol, TextIO

from config import Config
from utils import ProgressTracker, is_private_address


class Record(NamedTuple):
    """Одна запись ответа DNS."""
    name: str
    record_type: str
    address: str


class OutputError(OSError):
    """Не удалось открыть приемник или записать в него."""


class Outputter(Protocol):
    """Интерфейс приемника результатов."""

    def print_headers(self) -> None: ...

    def add_result(self, records: Iterable[Record]) -> None: ...

    def report_progress(self, label: str) -> None: ...

    def close(self) -> None: ...


def format_line(name: str, record_type: str, local: str) -> str:
    """Строка таблицы с фиксированной шириной колонок."""
    return Config.COLUMN_SEPARATOR.join([
        f"{name:<{Config.NAME_WIDTH}}",
        f"{record_type:<{Config.RECORD_WIDTH}}",
        f"{local:<{Config.LOCAL_WIDTH}}",
    ])


def header_line() -> str:
    """Строка заголовков таблицы."""
    return format_line(*Config.HEADERS)


def format_record(record: Record) -> str:
    """Строка таблицы для записи: имя, тип, частный ли адрес."""
    local = 'true' if is_private_address(record.address) else 'false'
    return format_line(record.name, record.record_type, local)


def ensure_output_dir(output_file: str) -> Path:
    """
    Создает директорию для выходного файла, если её нет.

    Args:
        output_file: Путь к выходному файлу

    Returns:
        Path объект выходного файла
    """
    output_path = Path(output_file)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    return output_path


def update_progress(progress: ProgressTracker, update, *args):
    """
    Вызывает метод трекера, пишущий в поток статуса.

    Ошибка записи отключает отображение прогресса (счетчик продолжает
    работать) и пробрасывается как OutputError.
    """
    try:
        update(*args)
    except OSError as e:
        progress.enabled = False
        raise OutputError(f"Cannot write progress: {e}") from e


class ConsoleOutput:
    """Вывод результатов в stdout, прогресс в stderr."""

    def __init__(self,
                 headers: bool,
                 total: int,
                 stream: Optional[TextIO] = None,
                 progress_stream: Optional[TextIO] = None,
                 show_progress: bool = True):
        self.headers = headers
        self.stream = stream or sys.stdout
        self.progress = ProgressTracker(total, stream=progress_stream, enabled=show_progress)
        self.results = 0
        self._headers_printed = False
        self._lock = threading.Lock()

    def _write(self, text: str):
        try:
            self.stream.write(text)
            self.stream.flush()
        except OSError as e:
            raise OutputError(f"Cannot write to console: {e}") from e

    def print_headers(self):
        with self._lock:
            if not self.headers or self._headers_printed:
                return
            self._write(header_line() + "\n")
            self._headers_printed = True

    def add_result(self, records: Iterable[Record]):
        lines = [format_record(record) for record in records]
        if not lines:
            return

        with self._lock:
            progress_error = None
            try:
                update_progress(self.progress, self.progress.clear)
            except OutputError as e:
                progress_error = e

            self._write("\n".join(lines) + "\n")
            self.results += len(lines)

            if progress_error is not None:
                raise progress_error
            if self.progress.enabled and self.progress.checked:
                update_progress(self.progress, self.progress.print_progress)

    def report_progress(self, label: str):
        with self._lock:
            update_progress(self.progress, self.progress.increment, label)

    def close(self):
        with self._lock:
            update_progress(self.progress, self.progress.stop)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class FileOutput:
    """Вывод результатов в файл (файл создается или перезаписывается)."""

    def __init__(self,
                 path: str,
                 headers: bool,
                 total: int,
                 progress_stream: Optional[TextIO] = None,
                 show_progress: bool = True):
        self.path = path
        self.headers = headers
        self.progress = ProgressTracker(total, stream=progress_stream, enabled=show_progress)
        self.results = 0
        self._headers_printed = False
        self._lock = threading.Lock()

        try:
            output_path = ensure_output_dir(path)
            self.file = open(output_path, 'w', encoding='utf-8', newline='\n')
        except OSError as e:
            raise OutputError(f"Cannot create output file '{path}': {e.strerror or e}") from e

    def _write(self, text: str):
        try:
            self.file.write(text)
            self.file.flush()
        except (OSError, ValueError) as e:
            # ValueError: запись в уже закрытый файл
            raise OutputError(f"Cannot write to '{self.path}': {e}") from e

    def print_headers(self):
        with self._lock:
            if not self.headers or self._headers_printed:
                return
            self._write(header_line() + "\n")
            self._headers_printed = True

    def add_result(self, records: Iterable[Record]):
        lines = [format_record(record) for record in records]
        if not lines:
            return

        with self._lock:
            self._write("\n".join(lines) + "\n")
            self.results += len(lines)

    def report_progress(self, label: str):
        with self._lock:
            update_progress(self.progress, self.progress.increment, label)

    def close(self):
        with self._lock:
            try:
                update_progress(self.progress, self.progress.stop)
            finally:
                if not self.file.closed:
                    self.file.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


def open_output(path: Optional[str],
                headers: bool,
                total: int,
                show_progress: bool = True) -> Outputter:
    """
    Открывает приемник: консоль, если путь не задан или равен '-', иначе файл.

    Raises:
        OutputError: файл не удалось создать
    """
    if path is None or path == '-':
        return ConsoleOutput(headers, total, show_progress=show_progress)
    return FileOutput(path, headers, total, show_progress=show_progress)
