"""Sending module statistics to a database collector as SQL inserts."""

import socket
import time

from tsar.common import LEN_64, LEN_128
from tsar.debug import LogLevel, do_debug
from tsar.output_tcp import CONNECT_TIMEOUT, str2sa


def _host_name():
    name = socket.gethostname()[:LEN_64 - 1]
    for index, ch in enumerate(name):
        if not " " <= ch <= "~":
            return name[:index]
    return name


def build_sql(framework, host_name, s_time):
    """Build one insert statement per enabled module from its first item."""
    statements = []
    for mod in framework.modules:
        if not mod.enable:
            continue
        table = mod.opt_line[2:]
        if not mod.st_flag:
            statements.append(
                f"insert into `{table}` (host_name, time) VALUES ('{host_name}', '{s_time}');"
            )
            continue
        columns = "".join(f", `{column.hdr.lstrip(' ')[:LEN_128]}`" for column in mod.info)
        st_array = mod.st_array or [0.0] * mod.n_col
        values = "".join(f", '{st_array[j]:.1f}'" for j in range(mod.n_col))
        statements.append(
            f"insert into `{table}` (host_name, time{columns}) VALUES "
            f"('{host_name}', '{s_time}'{values});"
        )
    return "".join(statements)


def output_db(framework, have_collect):
    """Send the current statistics to the configured database address.

    Returns whether the statements were sent.
    """
    config = framework.config
    address = str2sa(config.output_db_addr)
    try:
        sock = socket.create_connection(address, timeout=CONNECT_TIMEOUT)
    except OSError:
        return False
    with sock:
        host_name = _host_name()
        if not framework.get_st_array_from_file(have_collect):
            return False
        framework.reload_modules(config.output_db_mod)
        sql = build_sql(framework, host_name, str(int(time.time())))
        try:
            sock.sendall(sql.encode())
        except OSError as err:
            do_debug(LogLevel.ERR, f"output_db write error:{err.strerror}", config.debug_level)
            return False
    return True