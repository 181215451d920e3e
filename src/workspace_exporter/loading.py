from __future__ import annotations

from collections import deque
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING

from workspace_exporter.config import (
    BINARY_PLACEHOLDER,
    BINARY_SNIFF_BYTES,
    READ_ERROR_MARKER,
    FileIdentifier,
    FileRecord,
)
from workspace_exporter.logging import logger

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator

    from concurrent.futures import Future

    ByteReader = Callable[[FileIdentifier], bytes]


def read_bytes(ident: FileIdentifier) -> bytes:
    """Read the raw content of a file from disk.

    The first `BINARY_SNIFF_BYTES` bytes are read on their own; when they hold
    a null byte the file is binary and the rest of it is never read.

    Args:
        ident (FileIdentifier): the file to read

    Returns:
        bytes: the full file content, or only the sniffed prefix for a binary file
    """
    with ident.path.open("rb") as fh:
        head = fh.read(BINARY_SNIFF_BYTES)
        if is_binary(head):
            return head
        return head + fh.read()


def is_binary(data: bytes) -> bool:
    """Check if a payload is binary.

    Only the first `BINARY_SNIFF_BYTES` bytes are inspected; the payload is
    binary if that prefix contains a null byte.

    Args:
        data (bytes): the raw payload

    Returns:
        bool: True if a null byte occurs in the sniffed prefix
    """
    return b"\x00" in data[:BINARY_SNIFF_BYTES]


def decode_payload(rel: str, data: bytes) -> FileRecord:
    """Classify and decode raw bytes into a FileRecord.

    Args:
        rel (str): relative path of the file, used for the record and for logging
        data (bytes): the raw payload

    Returns:
        FileRecord: the binary placeholder, the decoded text (without a leading BOM),
            or the error marker when the payload is not valid UTF-8
    """
    if is_binary(data):
        return FileRecord(rel=rel, content=BINARY_PLACEHOLDER, is_binary=True)
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        logger.warning("file_decode_failed", path=rel, error=str(e))
        return FileRecord(rel=rel, content=READ_ERROR_MARKER, error=True)
    return FileRecord(rel=rel, content=text)


def load_record(ident: FileIdentifier, reader: ByteReader = read_bytes) -> FileRecord:
    """Load one file into a FileRecord without ever raising on I/O.

    A failed read is logged and turned into a record carrying
    `READ_ERROR_MARKER`, so one unreadable file never stops an export.

    Args:
        ident (FileIdentifier): the file to load
        reader (ByteReader): backing store returning the raw bytes for an identifier;
            it may stop after the sniffed prefix of a binary file

    Returns:
        FileRecord: the loaded record
    """
    try:
        data = reader(ident)
    except OSError as e:
        logger.warning("file_read_failed", path=ident.rel, error=str(e))
        return FileRecord(rel=ident.rel, content=READ_ERROR_MARKER, error=True)
    return decode_payload(ident.rel, data)


def _read_or_error(ident: FileIdentifier, reader: ByteReader) -> bytes | OSError:
    try:
        return reader(ident)
    except OSError as e:
        return e


def iter_records(
    identifiers: Iterable[FileIdentifier],
    reader: ByteReader = read_bytes,
    *,
    prefetch: int = 0,
) -> Iterator[FileRecord]:
    """Yield a FileRecord per identifier, in input order.

    With `prefetch > 0` up to `prefetch` reads run ahead in a thread pool; the
    records are still yielded strictly in the order of `identifiers`.

    Args:
        identifiers (Iterable[FileIdentifier]): the files to load
        reader (ByteReader): backing store returning the raw bytes for an identifier
        prefetch (int): size of the read-ahead window, 0 to read sequentially

    Yields:
        Iterator[FileRecord]: one record per identifier
    """
    if prefetch <= 0:
        for ident in identifiers:
            yield load_record(ident, reader)
        return

    pending: deque[tuple[FileIdentifier, Future[bytes | OSError]]] = deque()
    source = iter(identifiers)
    with ThreadPoolExecutor(max_workers=prefetch) as pool:
        try:
            for ident in source:
                pending.append((ident, pool.submit(_read_or_error, ident, reader)))
                if len(pending) >= prefetch:
                    yield _finish(*pending.popleft())
            while pending:
                yield _finish(*pending.popleft())
        finally:
            for _ident, future in pending:
                future.cancel()


def _finish(ident: FileIdentifier, future: Future[bytes | OSError]) -> FileRecord:
    result = future.result()
    if isinstance(result, OSError):
        logger.warning("file_read_failed", path=ident.rel, error=str(result))
        return FileRecord(rel=ident.rel, content=READ_ERROR_MARKER, error=True)
    return decode_payload(ident.rel, result)
