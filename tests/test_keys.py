from payroll_control.domain.keys import (
    build_key,
    legajo_ordinal,
    period_ordinal,
    receipt_sort_key,
    split_key,
)


def test_build_key_trims_both_parts():
    assert build_key(" 123 ", " 01/2024") == "123||01/2024"


def test_build_key_treats_none_as_empty():
    assert build_key(None, None) == "||"
    assert build_key("5", None) == "5||"


def test_split_key_round_trips_build_key():
    assert split_key(build_key("77", "12/2023")) == ("77", "12/2023")


def test_split_key_without_separator_is_empty():
    assert split_key("12301/2024") == ("", "")
    assert split_key("") == ("", "")


def test_split_key_splits_on_first_separator_only():
    assert split_key("1||02/2024||X") == ("1", "02/2024||X")


def test_legajo_ordinal_is_numeric_and_lenient():
    assert legajo_ordinal("0012") == 12
    assert legajo_ordinal(" 7 ") == 7
    assert legajo_ordinal("A12") == 0
    assert legajo_ordinal("") == 0
    assert legajo_ordinal(None) == 0


def test_period_ordinal():
    assert period_ordinal("03/2024") == 202403
    assert period_ordinal("12/2023") < period_ordinal("01/2024")
    assert period_ordinal("MANUAL") == 0
    assert period_ordinal("") == 0
    assert period_ordinal("01/02/2024") == 0


def test_receipt_sort_key_orders_numerically():
    pairs = [("10", "01/2024"), ("2", "01/2024"), ("2", "01/2023"), ("1", "MANUAL")]
    ordered = sorted(pairs, key=lambda p: receipt_sort_key(*p))
    assert ordered == [("1", "MANUAL"), ("2", "01/2023"), ("2", "01/2024"), ("10", "01/2024")]
