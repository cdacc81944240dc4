# tsar

`tsar` is a library for periodic system statistics. Statistics modules
produce text records. The library appends these records to a data file and
computes per-interval values from two samples. It then reports them as
check lines, or sends them to TCP collectors, a database collector or a
Nagios server.

## Installation

```
pip install .
```

## Configuration

`tsar.config.parse_config_file(path)` reads a configuration file into a
`Config`. Each line is a keyword followed by its values. Lines starting
with `#` are comments.

```
mod_cpu on
mod_io on
output_interface file,tcp
output_file_path /var/log/tsar.data
output_stdio_mod mod_cpu,mod_io
output_tcp_mod mod_cpu
output_tcp_addr 127.0.0.1:9999
output_tcp_merge on
max_day 365
debug_level ERROR
include /etc/tsar/conf.d/*.conf
```

- `mod_<name> on` enables a module. Any further words on the line become
  its parameter.
- `spec_<name> FIELDS` picks the columns shown for a module.
- `threshold name;wmin;wmax;cmin;cmax` sets Nagios limits. `N` means "not
  set".
- `include PATTERN` reads every file that matches the pattern.

## Modules

The library has no built-in statistics collectors. You supply them as
*providers*. A provider is a function that registers a module's columns
and callbacks on a `tsar.framework.Module`:

```python
from tsar.common import ModInfo, SummaryBit, StatsOpt
from tsar.config import parse_config_file
from tsar.framework import Framework
from tsar.output_file import output_file

def read_load(module, parameter):
    return "12,34"          # comma separated counters

def register_load(module):
    module.register_fields(
        "--load",
        "    --load              load average",
        [ModInfo(" load1", SummaryBit.SUMMARY), ModInfo(" load5", SummaryBit.DETAIL)],
        read_load,
        None,
    )

config = parse_config_file("/etc/tsar/tsar.conf")
framework = Framework(config, providers={"mod_load": register_load})
framework.load_modules()
framework.collect_record()
output_file(config.output_file_path, framework.cur_time, framework.enabled_records())
```

A record can hold several items, such as `sda=1,2,3;sdb=4,5,6;`. Each
column's `StatsOpt` sets how its statistic is derived from two samples:

- `NULL` keeps the current value.
- `SUB` takes the difference.
- `SUB_INTER` takes the difference divided by the interval.

Each column's `MergeMode` (`SUM` or `AVG`) sets how items are combined
when they are merged.

## Reporting

The `Framework` class provides these operations:

- `read_line_to_module_record(line)` splits a data-file line into module
  records and returns the line's timestamp.
- `collect_record_stat()` computes the statistics.
- `get_st_array_from_file(have_collect)` computes the statistics of the
  current sample against the one kept in `/tmp/.tsar.tmp`.

The output functions are:

- `tsar.check.running_check(framework, RunMode.CHECK_NEW)` reads the last
  two lines of the data file and returns a per-column check line.
  `RunMode.CHECK` returns the short legacy summary instead.
- `tsar.output_tcp.output_multi_tcp(addresses, data)` sends data to each
  `host:port` address.
- `tsar.output_db.output_db(framework, have_collect)` sends SQL insert
  statements to `output_db_addr`.
- `tsar.output_nagios.output_nagios(framework)` checks the configured
  thresholds and runs the `send_nsca_cmd` command through the shell when
  the cycle time is due.

`tsar.options.parse_options(argv, framework)` applies command-line style
arguments (`--cron`, `--check`, `--watch N`, `--interval N`, `--merge`,
`--spec FIELDS`, `--item PATTERN`, ...) to a configuration. Any unknown
`--name` argument selects that module for printing. It requires the
configuration file to exist.

## Data file format

Each line of the data file has two parts:

- a Unix timestamp;
- one section per module, written as `|<opt>:<record>`.

## What this package does not do

- It installs no `tsar` command.
- It does not print history tables or live views from the data file.
- It ships no statistics collectors. Every module's data must come from a
  provider you pass to `Framework`.