from stockmirror.matching.vendors import (
    DEFAULT_RULE_NAME,
    VENDOR_RULES,
    VendorRule,
    calculate_stock,
    get_vendor_rule,
    parse_quantity,
)


def test_parse_quantity_takes_integer_prefix():
    assert parse_quantity("12") == 12
    assert parse_quantity(" 7 cases") == 7
    assert parse_quantity("3.9") == 3
    assert parse_quantity("abc") == 0
    assert parse_quantity(None, default=1) == 1


def test_kehe_uses_first_ship_quantity_column():
    rule = get_vendor_rule("Vendor_Kehe")
    assert calculate_stock(rule, {"ShipQuantity": "6"}) == 6
    assert calculate_stock(rule, {"Ship Quantity": "", "Ship Qty": "4"}) == 4
    assert calculate_stock(rule, {"Other": "9"}) == 0


def test_coremark_multiplies_by_unit_size_unless_broken_case():
    rule = get_vendor_rule("Vendor_CoreMark")
    assert calculate_stock(rule, {"Qty": "2", "Unit Size": "12", "Broken Case": ""}) == 24
    assert calculate_stock(rule, {"Qty": "2", "Unit Size": "12", "Broken Case": "✔"}) == 2
    assert calculate_stock(rule, {"Qty": "2", "Unit Size": "12", "Broken Case": "TRUE"}) == 2
    assert calculate_stock(rule, {"Qty": "3"}) == 3


def test_walmart_counts_only_shopped_rows():
    rule = get_vendor_rule("Vendor_Walmart")
    assert calculate_stock(rule, {"Status": "Shopped", "Quantity": "5"}) == 5
    assert calculate_stock(rule, {"Status": "Unavailable", "Quantity": "5"}) == 0


def test_default_rule_reads_selected_column():
    rule = get_vendor_rule(DEFAULT_RULE_NAME)
    assert calculate_stock(rule, {"Count": "8"}, "Count") == 8
    assert calculate_stock(rule, {"Count": "8"}, None) == 0


def test_unknown_vendor_falls_back_to_default():
    assert get_vendor_rule("Vendor_Unknown").name == DEFAULT_RULE_NAME
    assert get_vendor_rule(None).name == DEFAULT_RULE_NAME


def test_negative_quantities_become_zero():
    rule = get_vendor_rule(DEFAULT_RULE_NAME)
    assert calculate_stock(rule, {"Count": "-4"}, "Count") == 0


def test_failing_rule_yields_zero():
    def explode(row, stock_column=None):
        raise KeyError("boom")

    rule = VendorRule(name="broken", display_name="Broken", calculate=explode)
    assert calculate_stock(rule, {"Qty": "1"}) == 0


def test_non_integer_rule_result_yields_zero():
    rule = VendorRule(name="odd", display_name="Odd", calculate=lambda row, stock_column=None: "5")
    assert calculate_stock(rule, {}) == 0


def test_registry_lists_every_vendor_once():
    names = [rule.name for rule in VENDOR_RULES]
    assert names == ["Vendor_Kehe", "Vendor_CoreMark", "Vendor_Walmart", "default"]
