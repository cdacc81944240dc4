"""Command-line options and usage text."""

import os
import re
import sys
from dataclasses import dataclass

from tsar.common import (
    DATA_SPLIT,
    DEFAULT_CONF_FILE_PATH,
    DEFAULT_PRINT_INTERVAL,
    ItemMerge,
    PrintMode,
    RunMode,
)
from tsar.debug import LogLevel, do_debug

USAGE = (
    "Usage: tsar [options]\n"
    "Options:\n"
    "    -check         display last record for alert\n"
    "    --check/-C     display last record for alert.example:tsar --check / tsar --check --cpu --io\n"
    "    --watch/-w     display last records in N minutes. example:tsar --watch 30 / tsar --watch 30 --cpu --io\n"
    "    --cron/-c      run in cron mode, output data to file\n"
    "    --interval/-i  specify intervals numbers, in minutes if with --live, it is in seconds\n"
    "    --list/-L      list enabled modules\n"
    "    --live/-l      running print live mode, which module will print\n"
    "    --file/-f      specify a filepath as input\n"
    "    --ndays/-n     show the value for the past days (default: 1)\n"
    "    --date/-d      show the value for the specify day(n or YYYYMMDD)\n"
    "    --merge/-m     merge multiply item to one\n"
    "    --detail/-D    do not conver data to K/M/G\n"
    "    --spec/-s      show spec field data, tsar --cpu -s sys,util\n"
    "    --item/-I      show spec item data, tsar --io -I sda\n"
    "    --help/-h      help\n"
)

_INT = re.compile(r"[ \t\n\v\f\r]*([+-]?[0-9]+)")


@dataclass(frozen=True)
class _Option:
    short: str
    long: str
    takes_arg: bool


_OPTIONS = (
    _Option("c", "cron", False),
    _Option("C", "check", False),
    _Option("w", "watch", True),
    _Option("i", "interval", True),
    _Option("L", "list", False),
    _Option("l", "live", False),
    _Option("f", "file", True),
    _Option("n", "ndays", True),
    _Option("d", "date", True),
    _Option("m", "merge", False),
    _Option("D", "detail", False),
    _Option("s", "spec", True),
    _Option("I", "item", True),
    _Option("h", "help", False),
)
_SHORT = {option.short: option for option in _OPTIONS}


def _atoi(text):
    match = _INT.match(text)
    return int(match.group(1)) if match else 0


def _match_long(name):
    """Find a long option by exact name or unambiguous prefix."""
    exact = [option for option in _OPTIONS if option.long == name]
    if exact:
        return exact[0]
    candidates = [option for option in _OPTIONS if option.long.startswith(name)]
    return candidates[0] if len(candidates) == 1 else None


def _scan(args):
    """Yield ``(key, value, raw_arg)``; key is an option letter, '?' or ':'."""
    index = 0
    while index < len(args):
        arg = args[index]
        index += 1
        if arg == "--":
            return
        if arg.startswith("--"):
            name, eq, value = arg[2:].partition("=")
            option = _match_long(name)
            if option is None or (eq and not option.takes_arg):
                yield "?", None, arg
                continue
            if option.takes_arg and not eq:
                if index >= len(args):
                    yield ":", None, arg
                    continue
                value = args[index]
                index += 1
            yield option.short, value if option.takes_arg else None, arg
        elif arg.startswith("-") and len(arg) > 1:
            rest = arg[1:]
            while rest:
                letter, rest = rest[0], rest[1:]
                option = _SHORT.get(letter)
                if option is None:
                    yield "?", None, arg
                    continue
                if not option.takes_arg:
                    yield letter, None, arg
                    continue
                if rest:
                    yield letter, rest, arg
                elif index < len(args):
                    yield letter, args[index], arg
                    index += 1
                else:
                    yield ":", None, arg
                break


def usage(framework):
    """Return the usage text, listing the usage line of every module."""
    modules = "".join(f"{mod.usage}\n" for mod in framework.modules)
    return f"{USAGE}Modules Enabled:\n{modules}"


def _exit_with_usage(framework):
    sys.stderr.write(usage(framework))
    raise SystemExit(0)


def parse_options(argv, framework):
    """Apply command-line arguments (program name excluded) to the configuration.

    Unknown ``--name`` arguments select modules to print. Help and usage
    errors print the usage text and raise ``SystemExit(0)``.
    """
    config = framework.config
    args = list(argv)

    if args == ["-check"]:
        config.running_mode = RunMode.CHECK
        config.print_mode = PrintMode.DETAIL
        config.print_interval = 60
        config.print_tail = False
        config.print_nline_interval = config.print_interval
        return config

    for key, value, raw in _scan(args):
        match key:
            case "c":
                config.running_mode = RunMode.CRON
            case "C":
                config.running_mode = RunMode.CHECK_NEW
            case "w":
                config.running_mode = RunMode.WATCH
                config.print_nminute = _atoi(value)
            case "i":
                config.print_interval = _atoi(value)
            case "L":
                config.running_mode = RunMode.LIST
            case "l":
                config.running_mode = RunMode.PRINT_LIVE
            case "f":
                config.output_file_path = value
            case "s":
                framework.set_special_field(value)
            case "I":
                framework.set_special_item(value)
            case "n":
                config.print_ndays = _atoi(value)
            case "d":
                config.print_day = _atoi(value)
            case "m":
                config.print_merge = ItemMerge.ITEM
            case "D":
                config.print_detail = True
            case "h":
                _exit_with_usage(framework)
            case ":":
                print("must have parameter")
                _exit_with_usage(framework)
            case "?":
                if "--" in raw:
                    config.output_print_mod += raw + DATA_SPLIT
                else:
                    _exit_with_usage(framework)

    if not config.print_ndays:
        config.print_ndays = 1
    if not config.print_interval:
        config.print_interval = DEFAULT_PRINT_INTERVAL

    if config.running_mode == RunMode.NULL:
        config.running_mode = RunMode.PRINT
    elif config.running_mode == RunMode.CHECK_NEW:
        config.print_interval = 60
        config.print_tail = False

    config.print_mode = PrintMode.DETAIL if config.output_print_mod else PrintMode.SUMMARY

    if not config.config_file:
        config.config_file = DEFAULT_CONF_FILE_PATH
    if not os.path.exists(config.config_file):
        do_debug(LogLevel.FATAL, "main_init: can't find tsar.conf", config.debug_level)
    return config