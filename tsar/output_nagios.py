"""Reporting threshold checks to a nagios server through send_nsca."""

import socket
import subprocess

from tsar.common import ITEM_SPLIT, ITEM_SPSTART, LEN_64, ItemMerge
from tsar.debug import LogLevel, do_debug


def _host_name():
    name = socket.gethostname()[:LEN_64 - 1]
    for index, ch in enumerate(name):
        if not " " <= ch <= "~":
            return name[:index]
    return name


def build_nagios_report(framework):
    """Compare statistics with the configured thresholds.

    Returns ``(result, output_err, output)``: result is 0 for OK, 1 for a
    warning and 2 for a critical value.
    """
    thresholds = framework.config.thresholds
    result = 0
    output = []
    output_err = []
    for mod in framework.modules:
        if not mod.enable:
            continue
        if not mod.st_flag:
            print(f"name {mod.name}")
            print("do nothing")
            continue
        n_col = mod.n_col
        st_array = mod.st_array or []
        tokens = [token for token in mod.record.split(ITEM_SPLIT) if token]
        for j, token in enumerate(tokens):
            check = mod.name[4:] + "."
            name, eq, _ = token.partition(ITEM_SPSTART)
            if eq:
                check += name + "."
            row = st_array[j * n_col:(j + 1) * n_col]
            for column, value in zip(mod.info, row):
                item = check + column.hdr.lstrip(" ")
                for threshold in thresholds:
                    if threshold.name != item:
                        continue
                    entry = f"{item}={value:0.2f} "
                    output.append(entry)
                    if threshold.cmin != 0 and value >= threshold.cmin:
                        if threshold.cmax == 0 or value <= threshold.cmax:
                            result = 2
                            output_err.append(entry)
                            continue
                    if threshold.wmin != 0 and value >= threshold.wmin:
                        if threshold.wmax == 0 or value <= threshold.wmax:
                            if result != 2:
                                result = 1
                            output_err.append(entry)
    return result, "".join(output_err) or "OK", "".join(output)


def build_nagios_command(framework, host_name, result, output_err, output):
    """Build the shell command that sends one report with send_nsca."""
    cfg = framework.config
    return (
        f'echo "{host_name};tsar;{result};{output_err}|{output}"'
        f"|{cfg.send_nsca_cmd} -H {cfg.server_addr} -p {cfg.server_port}"
        f' -to 10 -d ";" -c {cfg.send_nsca_conf}'
    )


def output_nagios(framework):
    """Send the report when the cycle time is due; return the command run, or None."""
    cfg = framework.config
    now_time = framework.cur_time - framework.cur_time % 60
    if cfg.cycle_time == 0 or now_time % cfg.cycle_time != 0:
        return None

    host_name = _host_name()
    cfg.print_merge = ItemMerge.NOT
    if not framework.get_st_array_from_file(False):
        return None
    framework.reload_modules(cfg.output_nagios_mod)

    result, output_err, output = build_nagios_report(framework)
    command = build_nagios_command(framework, host_name, result, output_err, output)
    do_debug(LogLevel.DEBUG, f"send to nagios:{command}", cfg.debug_level)
    if subprocess.run(command, shell=True, check=False).returncode != 0:
        do_debug(LogLevel.WARN, f"nsca run error:{command}", cfg.debug_level)
    print(command)
    return command