"""Reporting the last record of the data file for alerting."""

import os
import socket
import time

from tsar.common import ITEM_SPLIT, ITEM_SPSTART, LEN_64, LEN_128, RunMode, is_column_printed
from tsar.debug import LogLevel, do_debug

STALE_AFTER = 300


def trim(text):
    """Drop the leading spaces of ``text``, at most LEN_128 of them."""
    removed = len(text) - len(text.lstrip(" "))
    return text[min(removed, LEN_128):]


def read_tail_lines(path, n):
    """Return up to ``n`` last lines of the file at ``path``.

    A file without any line break holds no complete line and gives an
    empty list; an empty file is fatal.
    """
    with open(path, "rb") as fp:
        data = fp.read()
    if not data:
        do_debug(LogLevel.FATAL, f"fseek error: empty file {path}")
    if b"\n" not in data:
        return []
    parts = data.split(b"\n")
    lines = [part + b"\n" for part in parts[:-1]]
    if parts[-1]:
        lines.append(parts[-1])
    if n <= 0:
        return []
    return [line.decode("utf-8", errors="replace") for line in lines[-n:]]


def _host_name():
    name = socket.gethostname()[:LEN_64 - 1]
    for index, ch in enumerate(name):
        if not " " <= ch <= "~":
            return name[:index]
    return name


def _fatal(framework, message):
    do_debug(LogLevel.FATAL, message, framework.config.debug_level)


def _tail(framework, path, n):
    try:
        return read_tail_lines(path, n)
    except OSError:
        _fatal(framework, f"unable to open the log file {path}")
        raise


def _last_two_lines(framework, now):
    path = framework.config.output_file_path
    try:
        mtime = os.stat(path).st_mtime
    except OSError:
        _fatal(framework, f"unable to open the log file {path}")
        raise
    if now - mtime > STALE_AFTER:
        _fatal(
            framework,
            f"{path} is far away from now, now time is {int(now)}, last time is {int(mtime)}",
        )

    older = f"{path}.1"
    lines = _tail(framework, path, 2)
    if not lines:
        lines = _tail(framework, older, 2)
        if len(lines) < 2:
            _fatal(framework, f"not enough lines at log file {older}")
        return lines[0], lines[1]
    if len(lines) == 1:
        previous = _tail(framework, older, 1)
        if not previous:
            _fatal(framework, f"not enough lines at log file {older}")
        return previous[0], lines[0]
    return lines[0], lines[1]


def _item_slices(mod):
    n_col = mod.n_col
    for j in range(mod.n_item):
        if mod.st_array is None:
            yield j, None
        else:
            yield j, mod.st_array[j * n_col:(j + 1) * n_col]


def _tokens(record):
    return [token for token in record.split(ITEM_SPLIT) if token]


def _check_new_text(framework, host_name):
    cfg = framework.config
    parts = [f"{host_name}\ttsar\t"]
    for mod in framework.modules:
        if not mod.enable:
            continue
        index = mod.opt_line.find("--")
        mod_name = mod.opt_line[index + 2:] if index >= 0 else mod.opt_line
        tokens = _tokens(mod.record)
        for j, st_array in _item_slices(mod):
            opt = ""
            if j < len(tokens):
                name, eq, _ = tokens[j].partition(ITEM_SPSTART)
                if eq:
                    opt = name + ":"
            for k, column in enumerate(mod.info):
                if not is_column_printed(column, cfg.print_mode, mod.spec):
                    continue
                label = f"{mod_name}:{opt}{trim(column.hdr)}="
                if st_array is None or not mod.st_flag:
                    parts.append(f"{label}- ")
                else:
                    parts.append(f"{label}{st_array[k]:0.1f} ")
    parts.append("\n")
    return "".join(parts)


def _at(st_array, index):
    return st_array[index] if index < len(st_array) else 0.0


_SINGLE_ITEM = {
    "mod_apache": (
        0,
        " apache/qps=- apache/rt=- apache/busy=- apache/idle=-",
        lambda s: f" apache/qps={_at(s, 0):0.2f} apache/rt={_at(s, 1):0.2f}"
        f" apache/busy={_at(s, 3):0.0f} apache/idle={_at(s, 4):0.0f}",
    ),
    "mod_cpu": (1, " cpu=-", lambda s: f" cpu={_at(s, 5):0.2f}"),
    "mod_mem": (2, " mem=-", lambda s: f" mem={_at(s, 5):0.2f}%"),
    "mod_load": (
        3,
        " load1=- load5=- load15=-",
        lambda s: f" load1={_at(s, 0):0.2f} load5={_at(s, 1):0.2f} load15={_at(s, 2):0.2f}",
    ),
    "mod_traffic": (
        5,
        " ifin=- ifout=-",
        lambda s: f" ifin={_at(s, 0) / 1000:0.2f} ifout={_at(s, 1) / 1000:0.2f}",
    ),
    "mod_tcp": (6, " TCPretr=-", lambda s: f" TCPretr={_at(s, 7):0.2f}"),
    "mod_nginx": (
        8,
        " nginx/qps=- nginx/rt=-",
        lambda s: f" nginx/qps={_at(s, 7):0.2f} nginx/rt={_at(s, 8):0.2f}",
    ),
    "mod_swap": (
        9,
        " swap/total=- swap/util=-",
        lambda s: f" swap/total={_at(s, 2) / 1024 / 1024:0.2f} swap/util={_at(s, 3):0.2f}%",
    ),
}

_MULTI_ITEM = {
    "mod_io": (4, lambda name: f" {name}=-", lambda name, s: f" {name}={_at(s, 10):0.2f}"),
    "mod_partition": (
        7,
        lambda name: f" df{name}=-",
        lambda name, s: f" df{name}={_at(s, 3):0.2f}%",
    ),
}


def _check_text(framework, host_name):
    slots = [""] * 10
    for mod in framework.modules:
        if not mod.enable:
            continue
        if mod.name in _SINGLE_ITEM:
            slot, missing, present = _SINGLE_ITEM[mod.name]
            for _, st_array in _item_slices(mod):
                if st_array is None or not mod.st_flag:
                    slots[slot] = missing
                else:
                    slots[slot] = present(st_array)
        elif mod.name in _MULTI_ITEM:
            slot, missing, present = _MULTI_ITEM[mod.name]
            tokens = _tokens(mod.record)
            for (_, st_array), token in zip(_item_slices(mod), tokens):
                name, eq, _ = token.partition(ITEM_SPSTART)
                if not eq:
                    continue
                if st_array is None or not mod.st_flag:
                    slots[slot] += missing(name)
                else:
                    slots[slot] += present(name, st_array)
    return f"{host_name}\ttsar\t" + "".join(slots) + "\n"


def running_check(framework, check_type, host_name=None, now=None):
    """Compute statistics from the last two data lines and return the check report.

    ``check_type`` is RunMode.CHECK_NEW for the per-column report or
    RunMode.CHECK for the short legacy summary.
    """
    cfg = framework.config
    if host_name is None:
        host_name = _host_name()
    now = time.time() if now is None else now

    previous, latest = _last_two_lines(framework, now)

    framework.init_module_fields()
    ts_previous = framework.read_line_to_module_record(previous)
    framework.collect_record_stat()
    ts_latest = framework.read_line_to_module_record(latest)
    if ts_previous and ts_latest:
        cfg.print_interval = ts_latest - ts_previous
        if cfg.print_interval == 0:
            _fatal(framework, "running tsar -c too frequently")
    framework.collect_record_stat()

    if check_type == RunMode.CHECK_NEW:
        return _check_new_text(framework, host_name)
    if check_type == RunMode.CHECK:
        return _check_text(framework, host_name)
    return ""