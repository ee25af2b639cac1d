"""Supplier manifest rows: quoted, comma-separated records keyed by record type.

Record Type 2 legend (0-based columns):
  0 type, 1 customer number, 2 delivery address number, 3 invoice number,
  4 customer order number, 5 supplied part number, 6 pick quantity,
  7 nett value (extended), 8 user text, 9 currency code, 10 order type,
  11 exchange value, 12 programming charge, 13 tariff code,
  14 country of origin, 15 HU (may be "A/B/..."), 16 ECCN US, 17 ECCN UK,
  18 customer part number, 19 part description, 20 UOI, 21 net weight,
  22 CPC code
"""

from __future__ import annotations

import csv
import io
import os
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from .config import DEFAULT_LEGEND_PREFIX

COL_RECORD_TYPE = 0
COL_CUSTOMER = 1
COL_DELIVERY_ADDRESS = 2
COL_INVOICE = 3
COL_PRODUCT = 5
COL_QUANTITY = 6
COL_NET_VALUE = 7
COL_HANDLING_UNIT = 15

HANDLING_UNIT_SEPARATOR = "/"


class RecordKind(str, Enum):
    HEADER = "1"
    DETAIL = "2"
    OTHER = "3"
    UNKNOWN = "?"


_KINDS = {kind.value: kind for kind in (RecordKind.HEADER, RecordKind.DETAIL, RecordKind.OTHER)}


@dataclass(slots=True)
class ManifestRow:
    """One manifest line.

    ``raw`` holds the original text and is emitted verbatim until the row is
    changed; a changed row is re-serialized with every field quoted.
    """

    kind: RecordKind
    fields: List[str] = field(default_factory=list)
    raw: Optional[str] = None

    @property
    def is_detail(self) -> bool:
        return self.kind is RecordKind.DETAIL

    def get(self, column: int) -> str:
        return self.fields[column] if 0 <= column < len(self.fields) else ""

    @property
    def product_id(self) -> str:
        return self.get(COL_PRODUCT).strip()

    @property
    def quantity(self) -> str:
        return self.get(COL_QUANTITY)

    @property
    def net_value(self) -> str:
        return self.get(COL_NET_VALUE)

    @property
    def handling_unit(self) -> str:
        return self.get(COL_HANDLING_UNIT).strip()

    @property
    def delivery_address(self) -> str:
        return self.get(COL_DELIVERY_ADDRESS)

    def replace(self, updates: Dict[int, str]) -> "ManifestRow":
        """Copy with the given columns overwritten; the copy has no raw text."""
        fields = list(self.fields)
        for index, value in updates.items():
            if index >= len(fields):
                fields.extend([""] * (index + 1 - len(fields)))
            fields[index] = value
        return ManifestRow(kind=self.kind, fields=fields, raw=None)

    def with_values(
        self,
        handling_unit: Optional[str] = None,
        quantity: Optional[str] = None,
        net_value: Optional[str] = None,
    ) -> "ManifestRow":
        updates: Dict[int, str] = {}
        if handling_unit is not None:
            updates[COL_HANDLING_UNIT] = handling_unit
        if quantity is not None:
            updates[COL_QUANTITY] = quantity
        if net_value is not None:
            updates[COL_NET_VALUE] = net_value
        return self.replace(updates)

    def to_line(self) -> str:
        if self.raw is not None:
            return self.raw
        output = io.StringIO()
        writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator="")
        writer.writerow(self.fields)
        return output.getvalue()


def parse_line(line: str, legend_prefix: str = DEFAULT_LEGEND_PREFIX) -> ManifestRow:
    if not line.strip() or line.lstrip().lower().startswith(legend_prefix.lower()):
        return ManifestRow(kind=RecordKind.UNKNOWN, raw=line)

    fields = next(csv.reader([line]), [])
    if not fields:
        return ManifestRow(kind=RecordKind.UNKNOWN, raw=line)

    kind = _KINDS.get(fields[COL_RECORD_TYPE].strip(), RecordKind.UNKNOWN)
    return ManifestRow(kind=kind, fields=fields, raw=line)


def read_manifest(path: Union[str, Path], legend_prefix: str = DEFAULT_LEGEND_PREFIX) -> List[ManifestRow]:
    """Read a manifest; a missing file or a bad encoding propagates to the caller."""
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"Manifest not found: {file_path}")
    text = file_path.read_bytes().decode("utf-8-sig")
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [parse_line(line[:-1] if line.endswith("\r") else line, legend_prefix) for line in lines]


def atomic_write_text(path: Union[str, Path], text: str, encoding: str = "utf-8") -> None:
    """Write to a temporary file next to ``path`` and swap it in with one rename."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=str(target.parent))
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(text.encode(encoding))
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, target)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


def render_manifest(rows: Iterable[ManifestRow], newline: str = "\r\n") -> str:
    return "".join(row.to_line() + newline for row in rows)


def write_manifest(
    path: Union[str, Path],
    rows: Iterable[ManifestRow],
    bom: bool = True,
    newline: str = "\r\n",
) -> None:
    atomic_write_text(path, render_manifest(rows, newline), encoding="utf-8-sig" if bom else "utf-8")
