# io/dbf.py
"""
Numeric columns out of fixed-width records (dBase .dbf tables).

`decode_numeric_fields` walks `count` records of `stride` bytes starting at
`start` and parses each (begin, end) byte range as a float. Missing data is
normal in attribute tables, so a blank, unparsable or truncated field becomes
NaN instead of an error.
"""

import struct
from dataclasses import dataclass

import numpy as np

PAD_BYTES = b" \x00"
NUMERIC_TYPES = frozenset(b"BFMN")
HEADER_TERMINATOR = 0x0D
DESCRIPTOR_SIZE = 32


@dataclass(frozen=True)
class RecordLayout:
    start: int  # offset of the first byte of record 0
    stride: int  # bytes per record
    count: int
    fields: tuple[tuple[int, int], ...]  # (begin, end) relative to the record


@dataclass(frozen=True)
class FieldDescriptor:
    name: str
    type: str
    length: int
    decimal_count: int

    @property
    def is_numeric(self) -> bool:
        return ord(self.type) in NUMERIC_TYPES


@dataclass(frozen=True)
class DbfHeader:
    record_count: int
    header_length: int
    record_length: int
    fields: tuple[FieldDescriptor, ...]


def _parse_number(raw: bytes) -> float:
    text = raw.lstrip(PAD_BYTES).rstrip(PAD_BYTES)
    if not text:
        return np.nan
    try:
        return float(text)
    except ValueError:
        return np.nan


def decode_numeric_fields(buf: bytes, layout: RecordLayout) -> np.ndarray:
    """Record-major float64 array of length count * len(fields)."""
    view = memoryview(buf)
    out = np.full(layout.count * len(layout.fields), np.nan)
    k = 0
    for r in range(layout.count):
        base = layout.start + r * layout.stride
        for begin, end in layout.fields:
            lo, hi = base + begin, base + end
            if 0 <= lo <= hi <= len(view):
                out[k] = _parse_number(bytes(view[lo:hi]))
            k += 1
    return out


# --------------- dBase header ---------------------------


def _read_descriptor(buf: bytes, ptr: int) -> FieldDescriptor:
    raw_name = buf[ptr : ptr + 11]
    name = raw_name.split(b"\x00", 1)[0].decode("cp1252")
    return FieldDescriptor(
        name=name,
        type=chr(buf[ptr + 11]),
        length=buf[ptr + 16],
        decimal_count=buf[ptr + 17],
    )


def read_header(buf: bytes) -> DbfHeader:
    if len(buf) < DESCRIPTOR_SIZE:
        raise ValueError(f"dbf header needs {DESCRIPTOR_SIZE} bytes, got {len(buf)}")
    (record_count,) = struct.unpack_from("<I", buf, 4)
    header_length, record_length = struct.unpack_from("<HH", buf, 8)

    fields = []
    ptr = DESCRIPTOR_SIZE
    while ptr < len(buf) and buf[ptr] != HEADER_TERMINATOR:
        if ptr + DESCRIPTOR_SIZE > len(buf):
            raise ValueError(f"truncated field descriptor at byte {ptr}")
        fields.append(_read_descriptor(buf, ptr))
        ptr += DESCRIPTOR_SIZE
    return DbfHeader(record_count, header_length, record_length, tuple(fields))


def numeric_layout(header: DbfHeader) -> RecordLayout:
    spans, offset = [], 0
    for f in header.fields:
        if f.is_numeric:
            spans.append((offset, offset + f.length))
        offset += f.length
    # each record starts with a one byte deletion flag
    return RecordLayout(
        start=header.header_length + 1,
        stride=header.record_length,
        count=header.record_count,
        fields=tuple(spans),
    )


def read_numeric_columns(buf: bytes) -> dict[str, np.ndarray]:
    header = read_header(buf)
    layout = numeric_layout(header)
    names = [f.name for f in header.fields if f.is_numeric]
    if not names:
        return {}
    table = decode_numeric_fields(buf, layout).reshape(layout.count, len(names))
    return {name: table[:, j] for j, name in enumerate(names)}
