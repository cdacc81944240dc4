"""Shared constants, column descriptions and record parsing helpers.

A module record is either a flat list of comma separated counters
(``"1,2,3"``) or a list of named items (``"sda=1,2,3;sdb=4,5,6;"``).
"""

import enum
import re
from dataclasses import dataclass

U64_MAX = (1 << 64) - 1

LEN_32 = 32
LEN_64 = 64
LEN_128 = 128
LEN_256 = 256
LEN_512 = 512
LEN_1024 = 1024
LEN_4096 = 4096
LEN_1M = 1048576
LEN_10M = 10485760

MAX_COL_NUM = 64
MAX_MOD_NUM = 32
MAX_TCP_ADDR_NUM = 4

SECTION_SPLIT = "|"
STRING_SPLIT = ":"
ITEM_SPLIT = ";"
ITEM_SPSTART = "="
DATA_SPLIT = ","
PARAM_SPLIT = ":"
HDR_SPLIT = "#"
PRINT_DATA_SPLIT = "  "
PRINT_SEC_SPLIT = " "
W_SPACE = " \t\r\n"

DEFAULT_PRINT_NUM = 20
DEFAULT_PRINT_INTERVAL = 5

DEFAULT_MODULE_PATH = "/usr/local/tsar/modules"
DEFAULT_CONF_FILE_PATH = "/etc/tsar/tsar.conf"
DEFAULT_OUTPUT_FILE_PATH = "/var/log/tsar.data"
PRE_RECORD_FILE = "/tmp/.tsar.tmp"

HDR_WIDTH = 6


class RunMode(enum.IntEnum):
    NULL = 0
    LIST = 1
    CRON = 2
    CHECK = 3
    CHECK_NEW = 4
    PRINT = 5
    PRINT_LIVE = 6
    WATCH = 7


class PrintMode(enum.IntEnum):
    NULL = 0
    SUMMARY = 1
    DETAIL = 2
    ALL = 3


class TailType(enum.IntEnum):
    NULL = 0
    MAX = 1
    MEAN = 2
    MIN = 3


class SummaryBit(enum.IntEnum):
    HIDE = 0
    DETAIL = 1
    SUMMARY = 2
    SPEC = 3


class MergeMode(enum.IntEnum):
    """How a column combines across items when items are merged."""

    NULL = 0
    SUM = 1
    AVG = 2


class StatsOpt(enum.IntEnum):
    """How a column's statistic is derived from two samples."""

    NULL = 0
    SUB = 1
    SUB_INTER = 2


class ItemMerge(enum.IntEnum):
    """Whether the items of a multi-item module are merged into one."""

    NOT = 0
    ITEM = 1


@dataclass
class ModInfo:
    """Description of one column of a module."""

    hdr: str
    summary_bit: SummaryBit = SummaryBit.HIDE
    merge_mode: MergeMode = MergeMode.NULL
    stats_opt: StatsOpt = StatsOpt.NULL


_NUMBER = re.compile(r"[ \t\n\v\f\r]*([+-]?)([0-9]+)")
_DIGITS = frozenset("0123456789")


def _parse_u64(text, pos):
    """Parse an unsigned 64-bit number at ``pos``; return (value, end)."""
    match = _NUMBER.match(text, pos)
    if not match:
        return 0, pos
    value = int(match.group(2))
    if value > U64_MAX:
        value = U64_MAX
    elif match.group(1) == "-":
        value = -value & U64_MAX
    return value, match.end()


def is_digit(text):
    """Return whether ``text`` is an optional minus sign followed by digits."""
    if text.startswith("-"):
        text = text[1:]
    return all(ch in _DIGITS for ch in text)


def convert_record_to_array(record, limit):
    """Parse up to ``limit`` comma separated unsigned counters."""
    if limit <= 0 or not record:
        return []
    values = []
    pos = 0
    while len(values) < limit:
        value, pos = _parse_u64(record, pos)
        values.append(value)
        if record.find(DATA_SPLIT, pos) < 0:
            break
        pos += 1
    return values


def iter_record_items(record):
    """Yield the value part of each ``name=value;`` item of a record."""
    if not record:
        return
    start = 0
    while start < len(record):
        end = record.find(ITEM_SPLIT, start)
        if end < 0:
            return
        eq = record.find(ITEM_SPSTART, start)
        if eq < 0 or end < eq:
            return
        start = end + 2
        yield record[eq + 1:end]


def merge_mult_item_to_array(record, info, n_col):
    """Merge all items of a record into one row using each column's merge mode.

    Returns the merged row, or None when an item holds no values.
    """
    merged = [0] * n_col
    for n_item, item in enumerate(iter_record_items(record), start=1):
        values = convert_record_to_array(item, n_col)
        if not values:
            return None
        for col, (value, column) in enumerate(zip(values, info)):
            if column.merge_mode == MergeMode.SUM:
                merged[col] = (merged[col] + value) & U64_MAX
            elif column.merge_mode == MergeMode.AVG:
                total = (merged[col] * (n_item - 1) + value) & U64_MAX
                merged[col] = total // n_item
    return merged


def get_strtok_num(text, separators):
    """Count the non-empty tokens of ``text`` split on any of ``separators``."""
    if not text:
        return 0
    if not separators:
        return 1
    pattern = "[" + re.escape(separators) + "]"
    return sum(1 for token in re.split(pattern, text) if token)


def is_column_printed(info, print_mode, spec):
    """Return whether a column is shown for the given print mode."""
    if spec:
        return info.summary_bit == SummaryBit.SPEC
    if print_mode == PrintMode.SUMMARY:
        return info.summary_bit == SummaryBit.SUMMARY
    if print_mode == PrintMode.DETAIL:
        return info.summary_bit != SummaryBit.HIDE
    return False


def get_mod_hdr(info, print_mode, spec):
    """Build a module's column header line, each header cut to six characters."""
    return "".join(
        column.hdr[:HDR_WIDTH] + PRINT_DATA_SPLIT
        for column in info
        if is_column_printed(column, print_mode, spec)
    )