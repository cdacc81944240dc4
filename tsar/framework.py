"""Module registry and the statistics computed from module records."""

import os
import re
import time
from dataclasses import dataclass, field, replace

from tsar.common import (
    DATA_SPLIT,
    ITEM_SPLIT,
    LEN_256,
    PARAM_SPLIT,
    PRE_RECORD_FILE,
    SECTION_SPLIT,
    STRING_SPLIT,
    ItemMerge,
    StatsOpt,
    SummaryBit,
    convert_record_to_array,
    get_strtok_num,
    is_column_printed,
    iter_record_items,
    merge_mult_item_to_array,
)
from tsar.debug import LogLevel, do_debug

CHECK_MODULES = frozenset(
    {
        "mod_apache",
        "mod_cpu",
        "mod_mem",
        "mod_load",
        "mod_partition",
        "mod_io",
        "mod_tcp",
        "mod_traffic",
        "mod_nginx",
        "mod_swap",
    }
)

_LONG = re.compile(r"[ \t\n\v\f\r]*([+-]?[0-9]+)")


def _atol(text):
    match = _LONG.match(text)
    return int(match.group(1)) if match else 0


@dataclass
class Module:
    """One statistics module: its columns, its latest record and its arrays.

    ``data_collect(module, parameter)`` returns the module's new record.
    ``st_hook(module, pre, cur, interval)``, when given, returns the
    statistics of one item in place of the per-column defaults.
    """

    name: str
    parameter: str = ""
    spec_fields: str | None = None
    opt_line: str = ""
    usage: str = ""
    info: list = field(default_factory=list)
    data_collect: object = None
    st_hook: object = None
    loaded: bool = False
    enable: bool = False
    spec: bool = False
    p_item: int = 0
    print_item: str = ""
    record: str = ""
    n_item: int = 0
    n_record: int = 0
    pre_flag: bool = False
    st_flag: bool = False
    pre_array: list | None = None
    cur_array: list | None = None
    st_array: list | None = None
    max_array: list | None = None
    mean_array: list | None = None
    min_array: list | None = None

    @property
    def n_col(self):
        return len(self.info)

    def register_fields(self, opt, usage, info, data_collect, set_st_record):
        """Describe the module: option name, usage line, columns and callbacks."""
        self.opt_line = opt
        self.usage = usage
        self.info = [replace(column) for column in info]
        self.data_collect = data_collect
        self.st_hook = set_st_record

    def set_record(self, record):
        """Store a freshly collected record; None leaves the record as it was."""
        if record is not None:
            self.record = record

    def _array_specs(self, print_tail):
        specs = [("pre_array", 0), ("cur_array", 0), ("st_array", 0.0)]
        if print_tail:
            specs += [("max_array", 0.0), ("mean_array", 0.0), ("min_array", 0.0)]
        return specs

    def _allocate_arrays(self, n_item, print_tail):
        size = n_item * self.n_col
        for name, zero in self._array_specs(print_tail):
            setattr(self, name, [zero] * size)

    def _grow_arrays(self, n_item, print_tail):
        size = n_item * self.n_col
        for name, zero in self._array_specs(print_tail):
            array = getattr(self, name)
            if array is None:
                setattr(self, name, [zero] * size)
            elif len(array) < size:
                array.extend([zero] * (size - len(array)))

    def _update_tail(self, k):
        st = self.st_array[k]
        if self.n_record == 0:
            self.max_array[k] = self.mean_array[k] = self.min_array[k] = st
            return
        if st - self.max_array[k] > 0.1:
            self.max_array[k] = st
        if self.min_array[k] - st > 0.1 and st >= 0:
            self.min_array[k] = st
        if st >= 0:
            self.mean_array[k] = (
                (self.n_record - 1) * self.mean_array[k] + st
            ) / self.n_record

    def set_st_record(self, interval, print_tail):
        """Compute the statistics of every item from the previous and current samples."""
        self.st_flag = True
        n_col = self.n_col
        for base in range(0, self.n_item * n_col, n_col or 1):
            if n_col == 0:
                break
            if self.st_hook is not None:
                values = self.st_hook(
                    self,
                    self.pre_array[base:base + n_col],
                    self.cur_array[base:base + n_col],
                    interval,
                )
                for offset, value in enumerate(list(values)[:n_col]):
                    self.st_array[base + offset] = float(value)
            for k, column in enumerate(self.info, start=base):
                if self.st_hook is None:
                    cur, pre = self.cur_array[k], self.pre_array[k]
                    if column.stats_opt in (StatsOpt.SUB, StatsOpt.SUB_INTER):
                        if cur < pre:
                            self.pre_array[k] = cur
                            self.st_flag = False
                        elif column.stats_opt == StatsOpt.SUB:
                            self.st_array[k] = float(cur - pre)
                        else:
                            self.st_array[k] = float((cur - pre) // interval)
                    else:
                        self.st_array[k] = float(cur)
                if print_tail:
                    self._update_tail(k)
        self.n_record += 1


class Framework:
    """The set of configured modules and the operations run across them.

    ``providers`` maps a module name to a function that registers the
    module's fields on a :class:`Module`.
    """

    def __init__(self, config, providers=None, cur_time=None):
        self.config = config
        self.providers = dict(providers or {})
        self.cur_time = int(time.time()) if cur_time is None else cur_time
        self.modules = [
            Module(name=entry.name, parameter=entry.parameter, spec_fields=entry.spec_fields)
            for entry in config.modules
        ]

    def _log(self, level, message):
        return do_debug(level, message, self.config.debug_level)

    def _enabled(self):
        return (mod for mod in self.modules if mod.enable)

    @staticmethod
    def _mark_spec(mod, fields):
        for column in mod.info:
            if column.hdr.lstrip(" ") in fields:
                column.summary_bit = SummaryBit.SPEC
                mod.spec = True

    def load_modules(self):
        """Register every module that has a provider and enable it."""
        for mod in self.modules:
            if not mod.name or mod.loaded:
                continue
            register = self.providers.get(mod.name)
            if register is None:
                self._log(
                    LogLevel.ERR,
                    f"load_modules: dlopen module {mod.name} err no such module",
                )
                continue
            register(mod)
            mod.loaded = True
            mod.enable = True
            mod.spec = False
            self._log(LogLevel.INFO, f"load_modules: load new module '{mod.name}' to mods")
            if mod.spec_fields is not None:
                self._mark_spec(mod, mod.spec_fields)

    def reload_modules(self, spec):
        """Enable only the modules named in ``spec``; return whether any matched.

        ``spec`` is a comma separated list of module names or option lines,
        each optionally followed by ``:parameter``.
        """
        if not spec:
            return False
        for mod in self.modules:
            mod.enable = False
        reloaded = False
        for token in spec.split(DATA_SPLIT):
            if not token:
                continue
            name, sep, param = token.partition(PARAM_SPLIT)
            for mod in self.modules:
                if name in (mod.name, mod.opt_line):
                    reloaded = True
                    mod.enable = True
                    if sep:
                        mod.parameter = param
                    break
        return reloaded

    def reload_check_modules(self):
        """Enable exactly the modules reported by the short check output."""
        for mod in self.modules:
            mod.enable = mod.name in CHECK_MODULES

    def set_special_field(self, fields):
        """Mark every column whose header occurs in ``fields`` as a spec column."""
        for mod in self.modules:
            self._mark_spec(mod, fields)

    def set_special_item(self, item):
        """Restrict printing of every module to items matching ``item``."""
        for mod in self.modules:
            mod.print_item = item[:LEN_256]

    def init_module_fields(self):
        """Set each enabled module's item count and allocate its arrays."""
        merge = self.config.print_merge == ItemMerge.ITEM
        for mod in self._enabled():
            mod.n_item = 1 if merge else get_strtok_num(mod.record, ITEM_SPLIT)
            if mod.n_item:
                mod._allocate_arrays(mod.n_item, self.config.print_tail)

    def collect_record(self):
        """Ask every enabled module for a fresh record."""
        for mod in self._enabled():
            mod.record = ""
            if mod.data_collect is not None:
                mod.set_record(mod.data_collect(mod, mod.parameter))

    def collect_record_stat(self):
        """Parse current records, compute statistics and keep them as previous.

        Returns False when a module's item count changed, meaning the
        header has to be printed again.
        """
        no_p_hdr = True
        merge = self.config.print_merge == ItemMerge.ITEM
        tail = self.config.print_tail
        for mod in self._enabled():
            mod.st_flag = False
            ok = False
            n_col = mod.n_col
            n_item = get_strtok_num(mod.record, ITEM_SPLIT)
            if n_item:
                if not merge and n_item != mod.n_item:
                    no_p_hdr = False
                mod._grow_arrays(n_item, tail)
                mod.n_item = n_item
                if ITEM_SPLIT in mod.record:
                    if merge:
                        mod.n_item = 1
                        merged = merge_mult_item_to_array(mod.record, mod.info, n_col)
                        ok = merged is not None
                        mod.cur_array[:n_col] = merged if ok else [0] * n_col
                    else:
                        for num, item in enumerate(iter_record_items(mod.record)):
                            values = convert_record_to_array(item, n_col)
                            ok = bool(values)
                            if not ok:
                                break
                            base = num * n_col
                            mod.cur_array[base:base + len(values)] = values
                else:
                    values = convert_record_to_array(mod.record, n_col)
                    ok = bool(values)
                    mod.cur_array[:len(values)] = values

                if no_p_hdr and mod.pre_flag and ok:
                    mod.set_st_record(self.config.print_interval, tail)
                mod.pre_flag = ok
            else:
                mod.pre_flag = False
            mod.pre_array, mod.cur_array = mod.cur_array, mod.pre_array
        return no_p_hdr

    def read_line_to_module_record(self, line):
        """Split a data-file line into module records; return its timestamp.

        The line's last character, its newline, is dropped first.
        """
        line = line[:-1]
        for mod in self._enabled():
            mod.record = ""
            start = line.find(f"{SECTION_SPLIT}{mod.opt_line}{STRING_SPLIT}")
            if start < 0:
                continue
            start += len(mod.opt_line) + 2
            end = line.find(SECTION_SPLIT, start)
            mod.record = line[start:end] if end >= 0 else line[start:]
        return _atol(line)

    def disable_col_zero(self):
        """Disable enabled modules that have no column to show."""
        for mod in self._enabled():
            shown = any(
                is_column_printed(column, self.config.print_mode, False)
                for column in mod.info
            )
            if not shown:
                mod.enable = False

    def enabled_records(self):
        """Return ``(opt_line, record)`` for every enabled module with a record."""
        return [(mod.opt_line, mod.record) for mod in self._enabled() if mod.record]

    def _stat_against_previous(self, line, pre_record_path):
        try:
            with open(pre_record_path, encoding="utf-8", errors="replace") as fp:
                pre_line = fp.readline()
        except OSError:
            return False
        if not pre_line:
            return False
        head, sep, _ = pre_line.partition(SECTION_SPLIT)
        if not sep:
            return False
        self.config.print_interval = self.cur_time - _atol(head)
        if not self.config.print_interval:
            return False
        self.read_line_to_module_record(pre_line)
        self.init_module_fields()
        self.collect_record_stat()
        self.read_line_to_module_record(line)
        self.collect_record_stat()
        return True

    def get_st_array_from_file(self, have_collect, pre_record_path=PRE_RECORD_FILE):
        """Compute statistics against the sample kept in ``pre_record_path``.

        The current sample then replaces the kept one. Returns whether
        statistics could be computed.
        """
        if not have_collect:
            self.collect_record()
        self.config.print_merge = ItemMerge.ITEM
        line = (
            str(self.cur_time)
            + "".join(
                f"{SECTION_SPLIT}{opt}{STRING_SPLIT}{record}"
                for opt, record in self.enabled_records()
            )
            + "\n"
        )
        ok = self._stat_against_previous(line, pre_record_path)
        stored = line if ok else line + "\n"
        try:
            with open(pre_record_path, "w", encoding="utf-8") as fp:
                fp.write(stored)
            os.chmod(pre_record_path, 0o666)
        except OSError as err:
            self._log(LogLevel.ERR, f"fputs error:{err.strerror}")
        return ok