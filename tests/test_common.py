import pytest

from tsar.common import (
    DATA_SPLIT,
    PRINT_DATA_SPLIT,
    U64_MAX,
    MergeMode,
    ModInfo,
    PrintMode,
    SummaryBit,
    convert_record_to_array,
    get_mod_hdr,
    get_strtok_num,
    is_column_printed,
    is_digit,
    iter_record_items,
    merge_mult_item_to_array,
)


@pytest.mark.parametrize(
    "text, expected",
    [("123", True), ("-42", True), ("12a", False), ("", True), ("4.5", False)],
)
def test_is_digit(text, expected):
    assert is_digit(text) is expected


def test_convert_full_record():
    assert convert_record_to_array("1,2,3", 10) == [1, 2, 3]


def test_convert_respects_limit():
    assert convert_record_to_array("1,2,3", 2) == [1, 2]


@pytest.mark.parametrize("record, limit", [("", 5), ("1,2", 0), ("1,2", -1)])
def test_convert_empty_cases(record, limit):
    assert convert_record_to_array(record, limit) == []


def test_convert_non_numeric_field_reads_as_zero():
    values = convert_record_to_array("7,x,9", 10)
    assert values[0] == 7
    assert values[-1] == 9
    assert 0 in values


def test_convert_saturates_overflow():
    assert convert_record_to_array("9" * 30, 1) == [U64_MAX]


def test_convert_joined_round_trip():
    numbers = [5, 0, 123456789012, 42]
    record = DATA_SPLIT.join(str(n) for n in numbers)
    assert convert_record_to_array(record, len(numbers)) == numbers


def test_iter_record_items_yields_values():
    assert list(iter_record_items("sda=1,2;sdb=3,4;")) == ["1,2", "3,4"]


@pytest.mark.parametrize("record", ["", "a=1", "x;y=1;", "nothing;"])
def test_iter_record_items_stops_on_malformed(record):
    assert list(iter_record_items(record)) == []


def test_merge_sum_avg_and_untouched_columns():
    info = [
        ModInfo("a", merge_mode=MergeMode.SUM),
        ModInfo("b", merge_mode=MergeMode.AVG),
        ModInfo("c", merge_mode=MergeMode.NULL),
    ]
    merged = merge_mult_item_to_array("x=1,10,5;y=3,20,7;", info, 3)
    assert merged[0] == 1 + 3
    assert merged[1] == (10 + 20) // 2
    assert merged[2] == 0


def test_merge_single_item_equals_values():
    info = [ModInfo("a", merge_mode=MergeMode.SUM), ModInfo("b", merge_mode=MergeMode.AVG)]
    assert merge_mult_item_to_array("x=8,9;", info, 2) == [8, 9]


def test_merge_fails_on_empty_item():
    info = [ModInfo("a", merge_mode=MergeMode.SUM)]
    assert merge_mult_item_to_array("x=;y=1;", info, 1) is None


def test_merge_of_no_items_is_zero_row():
    info = [ModInfo("a", merge_mode=MergeMode.SUM)] * 3
    assert merge_mult_item_to_array("", info, 3) == [0, 0, 0]


@pytest.mark.parametrize(
    "text, seps, expected",
    [("a;b;;c", ";", 3), ("", ";", 0), ("a b\tc", " \t", 3), (";;", ";", 0), ("abc", "", 1)],
)
def test_get_strtok_num(text, seps, expected):
    assert get_strtok_num(text, seps) == expected


@pytest.mark.parametrize(
    "bit, mode, spec, expected",
    [
        (SummaryBit.SUMMARY, PrintMode.SUMMARY, False, True),
        (SummaryBit.DETAIL, PrintMode.SUMMARY, False, False),
        (SummaryBit.DETAIL, PrintMode.DETAIL, False, True),
        (SummaryBit.HIDE, PrintMode.DETAIL, False, False),
        (SummaryBit.SPEC, PrintMode.SUMMARY, True, True),
        (SummaryBit.SUMMARY, PrintMode.SUMMARY, True, False),
    ],
)
def test_is_column_printed(bit, mode, spec, expected):
    assert is_column_printed(ModInfo("hdr", summary_bit=bit), mode, spec) is expected


def _columns():
    return [
        ModInfo("  user", summary_bit=SummaryBit.SUMMARY),
        ModInfo("system_long", summary_bit=SummaryBit.DETAIL),
        ModInfo("hidden", summary_bit=SummaryBit.HIDE),
        ModInfo("picked", summary_bit=SummaryBit.SPEC),
    ]


def test_get_mod_hdr_summary():
    assert get_mod_hdr(_columns(), PrintMode.SUMMARY, False) == "  user" + PRINT_DATA_SPLIT


def test_get_mod_hdr_detail_truncates():
    hdr = get_mod_hdr(_columns(), PrintMode.DETAIL, False)
    assert hdr == "".join(h + PRINT_DATA_SPLIT for h in ["  user", "system", "picked"])


def test_get_mod_hdr_spec_only_spec_columns():
    assert get_mod_hdr(_columns(), PrintMode.DETAIL, True) == "picked" + PRINT_DATA_SPLIT