"""Reading the tsar configuration file."""

import glob
import os
import re
import struct
from dataclasses import dataclass, field

from tsar.common import LEN_256, MAX_MOD_NUM, MAX_TCP_ADDR_NUM, RunMode, PrintMode, ItemMerge
from tsar.debug import LogLevel, do_debug

_TOKEN_SPLIT = re.compile("[ \t\r\n]+")
_STRTOL = re.compile(
    r"[ \t\n\v\f\r]*([+-]?)(?:0[xX]([0-9a-fA-F]+)|(0[0-7]*)|([1-9][0-9]*))"
)
_ATOF = re.compile(
    r"[ \t\n\v\f\r]*[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?"
)
_THRESHOLD = re.compile(
    r"([^;]+)(?:;([.N0-9]+)(?:;([.N0-9]+)(?:;([.N0-9]+)(?:;([.N0-9]+))?)?)?)?"
)

_DEBUG_LEVELS = {
    "INFO": LogLevel.INFO,
    "WARN": LogLevel.WARN,
    "DEBUG": LogLevel.DEBUG,
    "ERROR": LogLevel.ERR,
    "FATAL": LogLevel.FATAL,
}


def _strtol(text):
    """Parse a leading integer with automatic base detection; 0 if none."""
    match = _STRTOL.match(text)
    if not match:
        return 0
    if match.group(2):
        value = int(match.group(2), 16)
    elif match.group(3) is not None:
        value = int(match.group(3), 8)
    else:
        value = int(match.group(4))
    return -value if match.group(1) == "-" else value


def _atof(text):
    """Parse a leading floating point number; 0.0 if none."""
    match = _ATOF.match(text)
    return float(match.group(0)) if match else 0.0


def _single(value):
    """Round a number to single precision, as thresholds are stored."""
    try:
        return struct.unpack("f", struct.pack("f", value))[0]
    except OverflowError:
        return float("inf") if value > 0 else float("-inf")


def _threshold_value(text):
    if text is None or text == "N":
        return 0.0
    return _single(_atof(text))


@dataclass
class Threshold:
    """Warning and critical bounds for one nagios check item."""

    name: str
    wmin: float = 0.0
    wmax: float = 0.0
    cmin: float = 0.0
    cmax: float = 0.0


@dataclass
class ModuleEntry:
    """A module switched on in the configuration."""

    name: str
    parameter: str = ""
    spec_fields: str | None = None


def parse_threshold(token):
    """Parse ``name;wmin;wmax;cmin;cmax;`` where ``N`` stands for no bound."""
    if token is None:
        do_debug(LogLevel.FATAL, "Bungled line")
    match = _THRESHOLD.match(token)
    if not match:
        return Threshold(name="")
    name, *bounds = match.groups()
    wmin, wmax, cmin, cmax = (_threshold_value(text) for text in bounds)
    return Threshold(name=name, wmin=wmin, wmax=wmax, cmin=cmin, cmax=cmax)


@dataclass
class Config:
    """Settings gathered from the configuration file and the command line."""

    running_mode: RunMode = RunMode.NULL
    config_file: str = ""
    debug_level: LogLevel = LogLevel.ERR

    output_interface: str = "file"

    output_print_mod: str = ""
    output_stdio_mod: str = ""
    output_nagios_mod: str = ""
    print_interval: int = 0
    print_nline_interval: int = 0
    print_mode: PrintMode = PrintMode.NULL
    print_merge: ItemMerge = ItemMerge.NOT
    print_detail: bool = False
    print_ndays: int = 0
    print_day: int = -1
    print_start_time: int = 0
    print_end_time: int = 0
    print_tail: bool = False
    print_file_number: int = 0
    print_max_day: int = 365
    print_nminute: int = 0

    output_db_mod: str = ""
    output_db_addr: str = ""

    output_tcp_mod: str = ""
    output_tcp_addr: list = field(default_factory=list)
    output_tcp_merge: str = ""

    server_addr: str = ""
    server_port: int = 0
    cycle_time: int = 0
    send_nsca_cmd: str = ""
    send_nsca_conf: str = ""
    thresholds: list = field(default_factory=list)

    output_file_path: str = ""

    lua_path: str = ""
    lua_cpath: str = ""

    modules: list = field(default_factory=list)

    def _log(self, level, message):
        return do_debug(level, message, self.debug_level)

    def find_module(self, name):
        """Return the configured module called ``name``, or None."""
        return next((entry for entry in self.modules if entry.name == name), None)

    def _parse_mod(self, name, tokens):
        switch = next(tokens, None)
        if switch is not None and switch.lower() not in ("on", "enable"):
            return
        if self.find_module(name) is not None:
            return
        if len(self.modules) >= MAX_MOD_NUM:
            self._log(LogLevel.ERR, f"Max mod number is {MAX_MOD_NUM} ignore mod {name}")
            return
        entry = ModuleEntry(name=name)
        self.modules.append(entry)

        first = next(tokens, None)
        if first is None:
            return
        parameter = first if len(first) < LEN_256 else ""
        for token in tokens:
            if len(parameter) + len(token) + 1 >= LEN_256:
                break
            parameter = f"{parameter} {token}"
        entry.parameter = parameter

    def _special_mod(self, token, tokens):
        entry = self.find_module("mod_" + token[5:])
        if entry is not None:
            entry.spec_fields = next(tokens, None)

    def _parse_int(self, tokens):
        token = next(tokens, None)
        if token is None:
            self._log(LogLevel.FATAL, "Bungled line")
        return _strtol(token)

    @staticmethod
    def _add_string(current, tokens):
        token = next(tokens, None)
        if token is None:
            return current
        return f"{current},{token}" if current else token

    def _set_debug_level(self, tokens):
        token = next(tokens, None)
        if token is not None:
            self.debug_level = _DEBUG_LEVELS.get(token, LogLevel.ERR)

    def _add_threshold(self, tokens):
        if len(self.thresholds) >= MAX_MOD_NUM:
            self._log(LogLevel.FATAL, "Too many mod threshold")
        self.thresholds.append(parse_threshold(next(tokens, None)))

    def parse_line(self, line):
        """Apply one configuration line; return False for an unknown keyword."""
        tokens = iter([token for token in _TOKEN_SPLIT.split(line) if token])
        keyword = next(tokens, None)
        if keyword is None or keyword.startswith("#"):
            return True
        if "mod_" in keyword:
            self._parse_mod(keyword, tokens)
            return True
        if "spec_" in keyword:
            self._special_mod(keyword, tokens)
            return True

        string_fields = {
            "output_interface": "output_interface",
            "output_file_path": "output_file_path",
            "output_db_addr": "output_db_addr",
            "output_tcp_merge": "output_tcp_merge",
            "server_addr": "server_addr",
            "send_nsca_cmd": "send_nsca_cmd",
            "send_nsca_conf": "send_nsca_conf",
            "lua_package_path": "lua_path",
            "lua_package_cpath": "lua_cpath",
        }
        list_fields = {
            "output_db_mod": "output_db_mod",
            "output_tcp_mod": "output_tcp_mod",
            "output_nagios_mod": "output_nagios_mod",
            "output_stdio_mod": "output_stdio_mod",
        }
        int_fields = {
            "server_port": "server_port",
            "cycle_time": "cycle_time",
            "max_day": "print_max_day",
        }

        if keyword in string_fields:
            token = next(tokens, None)
            if token is not None:
                setattr(self, string_fields[keyword], token)
        elif keyword in list_fields:
            attr = list_fields[keyword]
            setattr(self, attr, self._add_string(getattr(self, attr), tokens))
        elif keyword in int_fields:
            setattr(self, int_fields[keyword], self._parse_int(tokens))
        elif keyword == "output_tcp_addr":
            self.output_tcp_addr = [token for _, token in zip(range(MAX_TCP_ADDR_NUM), tokens)]
        elif keyword == "debug_level":
            self._set_debug_level(tokens)
        elif keyword == "include":
            pattern = next(tokens, None)
            if pattern is not None:
                self.include(pattern)
        elif keyword == "threshold":
            self._add_threshold(tokens)
        else:
            return False
        return True

    def process_input_line(self, line, file_name):
        """Strip the line end, skip comments and blanks, and apply the line."""
        line = line.split("\n", 1)[0].split("\r", 1)[0]
        if not line or line.startswith("#"):
            return True
        if not self.parse_line(line):
            self._log(
                LogLevel.INFO,
                f"parse_config_file: unknown keyword in '{line}' at file {file_name}",
            )
            return False
        return True

    def read(self, lines, file_name):
        """Apply every line of an open configuration file."""
        for line in lines:
            self.process_input_line(line, file_name)

    def include(self, pattern):
        """Read every configuration file that matches a shell pattern."""
        command = f"ls {pattern} 2>/dev/null"
        if any(ch in command for ch in ";|&"):
            self._log(LogLevel.ERR, f"include format Error:{command}")
        for path in sorted(glob.glob(os.path.expanduser(pattern))):
            self._log(LogLevel.INFO, f"parse file {path}")
            try:
                with open(path, encoding="utf-8", errors="replace", newline="") as fp:
                    self.read(fp, path)
            except OSError as err:
                self._log(
                    LogLevel.ERR,
                    f"Unable to open configuration file: {path} Error msg: {err.strerror}",
                )


def parse_config_file(path):
    """Read the configuration file at ``path`` into a fresh :class:`Config`."""
    config = Config()
    try:
        fp = open(path, encoding="utf-8", errors="replace", newline="")
    except OSError:
        do_debug(LogLevel.FATAL, f"Unable to open configuration file: {path}")
        raise
    with fp:
        config.read(fp, str(path))
    return config