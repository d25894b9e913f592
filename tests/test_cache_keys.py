"""
Tests for cache key derivation.
"""

from eshop_api.cache_keys import KeySpec, derive_key, format_key_value


def test_settings_key_defaults():
    """Absent parameters with defaults still appear in the key."""
    assert derive_key("get_settings", {}) == "get_settings|type:all|user_id:"
    assert derive_key("get_settings", None) == "get_settings|type:all|user_id:"


def test_irrelevant_params_ignored():
    """Parameters outside the endpoint's list do not change the key."""
    plain = derive_key("get_settings", {"type": "all", "user_id": "7"})
    noisy = derive_key("get_settings", {"type": "all", "user_id": "7", "lang": "en", "ts": "1"})
    assert plain == noisy == "get_settings|type:all|user_id:7"


def test_param_order_does_not_matter():
    first = derive_key("get_sections", {"limit": "5", "city": "Surat", "section_id": "2"})
    second = derive_key("get_sections", {"section_id": "2", "city": "Surat", "limit": "5"})
    assert first == second == "get_sections|city:Surat|limit:5|section_id:2"


def test_empty_values_dropped_without_default():
    assert derive_key("get_sections", {"city": "", "user_id": None}) == "get_sections"


def test_unknown_endpoint_uses_all_params():
    """Endpoints without a KeySpec key on every non-empty parameter."""
    assert derive_key("get_ticket_types", {}) == "get_ticket_types"
    assert derive_key("get_ticket_types", {"b": "2", "a": "1", "c": ""}) == "get_ticket_types|a:1|b:2"


def test_different_values_give_different_keys():
    assert derive_key("get_settings", {"user_id": "1"}) != derive_key("get_settings", {"user_id": "2"})


def test_separators_in_values_escaped():
    """Separator characters inside a value never forge another parameter."""
    forged = derive_key("get_ticket_types", {"a": "1|b:2"})
    assert forged == "get_ticket_types|a:1\\|b\\:2"
    assert forged != derive_key("get_ticket_types", {"a": "1", "b": "2"})


def test_custom_specs():
    specs = {"get_faqs": KeySpec(params=("product_id",), defaults={"product_id": "0"})}
    assert derive_key("get_faqs", {"search": "x"}, specs) == "get_faqs|product_id:0"


def test_format_key_value():
    assert format_key_value(True) == "true"
    assert format_key_value(3.0) == "3"
    assert format_key_value(2.5) == "2.5"
    assert format_key_value([1, "a"]) == "1,a"
    assert format_key_value({"b": 1, "a": 2}) == '{"a":2,"b":1}'
