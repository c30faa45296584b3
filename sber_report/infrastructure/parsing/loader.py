"""Lenient HTML loader producing the normalized document for one statement."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from io import IOBase
from pathlib import Path

from bs4 import BeautifulSoup
from bs4.builder import ParserRejectedMarkup

from sber_report.domain.errors import MalformedMarkup
from sber_report.infrastructure.parsing.utils import compute_file_hash, ensure_bytes

logger = logging.getLogger(__name__)

PARSER = "lxml"


@dataclass(frozen=True)
class RawReport:
    """Parsed document tree plus where it came from; treat ``document`` as read-only."""

    document: BeautifulSoup
    source_name: str | None
    file_hash: str


def load(source: bytes | str | Path | IOBase, source_name: str | None = None) -> RawReport:
    """Build a RawReport from markup bytes, markup text, a path or a file object."""
    if isinstance(source, Path) and source_name is None:
        source_name = source.name
    data = ensure_bytes(source)
    if not data.strip():
        raise MalformedMarkup(f"{source_name or 'document'} is empty")

    try:
        document = BeautifulSoup(data, PARSER)
    except (ParserRejectedMarkup, ValueError) as exc:
        raise MalformedMarkup(f"{source_name or 'document'} cannot be parsed: {exc}") from exc

    if document.find(True) is None or not document.get_text(strip=True):
        raise MalformedMarkup(f"{source_name or 'document'} has no readable content")

    logger.debug(
        "Loaded %s (%d bytes, encoding %s)",
        source_name or "document",
        len(data),
        document.original_encoding,
    )
    return RawReport(document=document, source_name=source_name, file_hash=compute_file_hash(data))
