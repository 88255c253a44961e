import pytest

from ponmgr.validation import (
    validate_cli_token,
    validate_label,
    validate_port_name,
    validate_serial_number,
    validate_trunk_mode,
    validate_vlan_id,
    validate_vlan_list,
)


@pytest.mark.parametrize("port", ["gei_1/1/1", "0/19/0", "xgei-0/2/1", "eth0.100"])
def test_port_names_accepted(port):
    assert validate_port_name(port) == port


@pytest.mark.parametrize("port", ["gei_1/1/1; reboot", "gei 1/1/1", "", "port$(id)"])
def test_port_names_with_shell_or_cli_syntax_rejected(port):
    with pytest.raises(ValueError):
        validate_port_name(port)


def test_control_characters_are_stripped_before_matching():
    assert validate_port_name("gei_1/1/1\r\n") == "gei_1/1/1"


def test_vlan_bounds():
    assert validate_vlan_id("4094") == 4094
    with pytest.raises(ValueError):
        validate_vlan_id(0)
    with pytest.raises(ValueError):
        validate_vlan_id(True)


def test_vlan_list_accepts_strings_and_deduplicates():
    assert validate_vlan_list("100, 200 100") == [100, 200]
    assert validate_vlan_list([10, "20"]) == [10, 20]
    with pytest.raises(ValueError):
        validate_vlan_list([10, 5000])


def test_serial_numbers_are_uppercased():
    assert validate_serial_number("hwtc1a2b3c4d") == "HWTC1A2B3C4D"
    with pytest.raises(ValueError):
        validate_serial_number('HWTC" desc "x')


def test_labels_and_quoted_tokens():
    assert validate_label(None) is None
    assert validate_label("Customer 42") == "Customer 42"
    with pytest.raises(ValueError):
        validate_label("name\"; undo")
    assert validate_cli_token("http://acs.example.net:7547/", "acs_url") == "http://acs.example.net:7547/"
    with pytest.raises(ValueError):
        validate_cli_token("pass word", "acs_password")


def test_trunk_mode_defaults_to_trunk():
    assert validate_trunk_mode(None) == "trunk"
    assert validate_trunk_mode("HYBRID") == "hybrid"
    with pytest.raises(ValueError):
        validate_trunk_mode("dot1q")
