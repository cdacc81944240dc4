from tsar.common import ModInfo, SummaryBit
from tsar.config import Config, ModuleEntry, Threshold
from tsar.framework import Framework
from tsar.output_nagios import build_nagios_command, build_nagios_report, output_nagios

CUR_TIME = 1_700_000_070


def _register(mod):
    mod.register_fields("--test", "usage", [ModInfo("   val", SummaryBit.SUMMARY)], None, None)


def make_framework(thresholds=(), record="5", st=(12.0,), st_flag=True, **settings):
    config = Config(modules=[ModuleEntry("mod_test")], thresholds=list(thresholds), **settings)
    framework = Framework(config, {"mod_test": _register}, cur_time=CUR_TIME)
    framework.load_modules()
    mod = framework.modules[0]
    mod.record = record
    mod.st_flag = st_flag
    mod.st_array = list(st)
    return framework


def test_critical_value():
    fw = make_framework([Threshold("test.val", wmin=5.0, cmin=10.0)], st=(12.0,))
    assert build_nagios_report(fw) == (2, "test.val=12.00 ", "test.val=12.00 ")


def test_warning_value():
    fw = make_framework([Threshold("test.val", wmin=5.0, cmin=10.0)], st=(7.0,))
    assert build_nagios_report(fw) == (1, "test.val=7.00 ", "test.val=7.00 ")


def test_ok_value():
    fw = make_framework([Threshold("test.val", wmin=5.0, cmin=10.0)], st=(2.0,))
    assert build_nagios_report(fw) == (0, "OK", "test.val=2.00 ")


def test_critical_upper_bound_falls_back_to_warning():
    fw = make_framework([Threshold("test.val", wmin=5.0, cmin=10.0, cmax=11.0)], st=(12.0,))
    result, output_err, _ = build_nagios_report(fw)
    assert result == 1
    assert output_err == "test.val=12.00 "


def test_multi_item_names():
    fw = make_framework(
        [Threshold("test.sdb.val", cmin=10.0)],
        record="sda=1;sdb=2;",
        st=(3.0, 20.0),
    )
    assert build_nagios_report(fw) == (2, "test.sdb.val=20.00 ", "test.sdb.val=20.00 ")


def test_module_without_statistics(capsys):
    fw = make_framework([Threshold("test.val", cmin=1.0)], st_flag=False)
    assert build_nagios_report(fw) == (0, "OK", "")
    assert "name mod_test" in capsys.readouterr().out


def test_disabled_module_is_ignored():
    fw = make_framework([Threshold("test.val", cmin=1.0)])
    fw.modules[0].enable = False
    assert build_nagios_report(fw) == (0, "OK", "")


def test_build_command():
    fw = make_framework(
        send_nsca_cmd="/usr/bin/send_nsca",
        server_addr="127.0.0.1",
        server_port=5667,
        send_nsca_conf="/etc/send_nsca.cfg",
    )
    command = build_nagios_command(fw, "host1", 2, "err", "out")
    assert command == (
        'echo "host1;tsar;2;err|out"|/usr/bin/send_nsca -H 127.0.0.1 -p 5667'
        ' -to 10 -d ";" -c /etc/send_nsca.cfg'
    )


def test_no_cycle_time_sends_nothing():
    fw = make_framework(cycle_time=0)
    assert output_nagios(fw) is None


def test_cycle_not_due_sends_nothing():
    fw = make_framework(cycle_time=CUR_TIME + 1)
    assert output_nagios(fw) is None