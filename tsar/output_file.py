"""Appending collected module records to the data file."""

from tsar.common import LEN_1M, LEN_10M, SECTION_SPLIT, STRING_SPLIT
from tsar.debug import LogLevel, do_debug


def format_data_line(cur_time, records):
    """Build one data-file line from ``(opt_line, record)`` pairs.

    Empty records are skipped; returns None when no record remains.
    """
    parts = [str(cur_time)]
    length = len(parts[0])
    for opt_line, record in records:
        if not record:
            continue
        detail = f"{SECTION_SPLIT}{opt_line}{STRING_SPLIT}{record}"
        if len(detail) >= LEN_1M - 1:
            do_debug(LogLevel.FATAL, f"mod {opt_line} length is overflow {len(detail)}")
        if length + len(detail) >= LEN_10M - 2:
            do_debug(
                LogLevel.FATAL,
                f"tsar.data line length is overflow line {length} detail {len(detail)}",
            )
        parts.append(detail)
        length += len(detail)
    if len(parts) == 1:
        return None
    return "".join(parts) + "\n"


def output_file(path, cur_time, records):
    """Append the records as one line to ``path``; return whether a line was written."""
    line = format_data_line(cur_time, records)
    try:
        with open(path, "a", encoding="utf-8") as fp:
            if line is None:
                return False
            fp.write(line)
    except OSError as err:
        do_debug(
            LogLevel.FATAL,
            f"output_file: can't open or create data file = {path} err={err.errno}",
        )
    return True