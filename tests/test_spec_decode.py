"""Tests for the spec wire codec and its lenient decoding rules."""

import json

import pytest

from miniapp.models.spec import (
    ActionType,
    Capability,
    Category,
    ComponentType,
    LayoutHint,
    PageLayout,
    SpecDecodeError,
    decode_spec,
    encode_spec,
    encode_spec_json,
)
from miniapp.models.value import Value


class TestRoundTrip:
    def test_decode_encode_decode_is_identity(self, counter_spec):
        assert decode_spec(encode_spec(counter_spec)) == counter_spec

    def test_round_trip_through_json_text(self, counter_spec):
        assert decode_spec(encode_spec_json(counter_spec)) == counter_spec

    def test_wire_format_uses_camel_case(self, counter_spec):
        wire = encode_spec(counter_spec)
        assert wire["ownerId"] == "user-1"
        assert wire["initialState"] == {"darkMode": False, "title": "Hello"}
        toggle = wire["pages"][0]["components"][1]
        assert toggle["bindings"] == {"stateKey": "darkMode"}
        button = wire["pages"][0]["components"][3]
        assert button["actionIds"] == ["nav-details"]
        assert wire["createdAt"].endswith("Z")

    def test_enum_raw_values(self, counter_spec):
        wire = encode_spec(counter_spec)
        assert wire["category"] == "productivity"
        assert wire["capabilities"] == ["TIMER"]
        assert wire["actions"][0]["type"] == "NAVIGATE"
        assert wire["pages"][0]["components"][0]["props"]["layoutHint"] == "hero"


class TestLenientDecode:
    def test_page_without_layout_defaults_to_scroll(self):
        spec = decode_spec({"name": "A", "pages": [{"id": "p1", "components": []}]})
        assert spec.pages[0].layout is PageLayout.SCROLL

    def test_unknown_layout_and_category_fall_back(self):
        spec = decode_spec({
            "name": "A",
            "category": "gaming",
            "pages": [{"id": "p1", "layout": "masonry"}],
        })
        assert spec.category is Category.UTILITY
        assert spec.pages[0].layout is PageLayout.SCROLL

    def test_missing_ids_are_generated(self):
        spec = decode_spec({
            "name": "A",
            "pages": [{"id": "p1", "components": [{"type": "label"}]}],
            "actions": [{"type": "SHOW_ALERT"}],
        })
        assert spec.id
        assert spec.pages[0].components[0].id
        assert spec.actions[0].id

    def test_capabilities_normalized_and_unknown_dropped(self):
        spec = decode_spec({
            "name": "A",
            "capabilities": ["timer", "local-notifications", "TELEPORT", "TIMER"],
        })
        assert spec.capabilities == (Capability.TIMER, Capability.LOCAL_NOTIFICATIONS)

    def test_action_type_in_camel_case(self):
        spec = decode_spec({"name": "A", "actions": [{"id": "a", "type": "showAlert"}]})
        assert spec.actions[0].type is ActionType.SHOW_ALERT

    def test_version_from_dotted_string(self):
        assert decode_spec({"name": "A", "version": "3.1.0"}).version == 3
        assert decode_spec({"name": "A", "version": None}).version == 1

    def test_binding_shorthand(self):
        spec = decode_spec({
            "name": "A",
            "pages": [{"id": "p", "components": [
                {"id": "t", "type": "toggle", "binding": "flag"},
            ]}],
        })
        assert spec.pages[0].components[0].state_key == "flag"

    def test_unbound_component_uses_its_id_as_state_key(self):
        spec = decode_spec({
            "name": "A",
            "pages": [{"id": "p", "components": [{"id": "t", "type": "toggle"}]}],
        })
        assert spec.pages[0].components[0].state_key == "t"

    def test_image_url_aliases(self):
        spec = decode_spec({
            "name": "A",
            "pages": [{"id": "p", "components": [
                {"id": "i", "type": "image", "props": {"imageUrl": "https://x.test/a.png"}},
            ]}],
        })
        component = spec.pages[0].components[0]
        assert component.props.image_url == "https://x.test/a.png"
        assert encode_spec(spec)["pages"][0]["components"][0]["props"]["imageURL"] == "https://x.test/a.png"

    def test_style_sanitized(self):
        spec = decode_spec({
            "name": "A",
            "pages": [{"id": "p", "components": [
                {"id": "l", "type": "label", "props": {
                    "layoutHint": "HERO",
                    "style": {"fontWeight": "bold", "fontSize": "huge", "textColor": 12},
                }},
            ]}],
        })
        props = spec.pages[0].components[0].props
        assert props.layout_hint is LayoutHint.HERO
        assert props.style.font_weight == 700
        assert props.style.font_size == 16
        assert props.style.text_color == "#0F172A"

    def test_style_number_past_float_range_falls_back(self):
        spec = decode_spec({
            "name": "A",
            "pages": [{"id": "p", "components": [
                {"id": "l", "type": "label", "props": {"style": {"fontSize": 10 ** 400, "padding": -(10 ** 400)}}},
            ]}],
        })
        style = spec.pages[0].components[0].props.style
        assert style.font_size == 16
        assert style.padding == 12

    def test_non_string_list_items_become_text(self):
        spec = decode_spec({
            "name": "A",
            "pages": [{"id": "p", "components": [
                {"id": "l", "type": "list", "props": {"items": ["a", 2, True]}},
            ]}],
        })
        assert spec.pages[0].components[0].props.items == ("a", "2.0", "true")

    def test_action_params_are_values(self, counter_spec):
        action = counter_spec.action("set-title")
        assert action.param("value") == Value.string("Updated")
        assert action.param("missing") is None

    def test_timer_display_type(self):
        spec = decode_spec({
            "name": "A",
            "pages": [{"id": "p", "components": [{"id": "t", "type": "timerDisplay"}]}],
        })
        assert spec.pages[0].components[0].type is ComponentType.TIMER_DISPLAY


class TestDecodeErrors:
    def test_invalid_json(self):
        with pytest.raises(SpecDecodeError):
            decode_spec("{not json")

    def test_not_an_object(self):
        with pytest.raises(SpecDecodeError):
            decode_spec(json.dumps([1, 2, 3]))

    def test_missing_name(self):
        with pytest.raises(SpecDecodeError) as exc_info:
            decode_spec({"pages": []})
        assert exc_info.value.errors

    def test_unknown_component_type(self):
        with pytest.raises(SpecDecodeError):
            decode_spec({"name": "A", "pages": [{"id": "p", "components": [{"type": "carousel"}]}]})

    def test_component_listing_itself_as_child(self):
        with pytest.raises(SpecDecodeError):
            decode_spec({"name": "A", "pages": [{"id": "p", "components": [
                {"id": "c", "type": "container", "children": [{"id": "c", "type": "label"}]},
            ]}]})

    def test_state_integer_past_float_range(self):
        document = '{"name": "n", "pages": [{"id": "p"}], "initialState": {"big": 1' + "0" * 400 + "}}"
        with pytest.raises(SpecDecodeError) as exc_info:
            decode_spec(document)
        assert exc_info.value.errors

    def test_integer_past_digit_limit(self):
        document = '{"name": "n", "initialState": {"big": 1' + "0" * 6000 + "}}"
        with pytest.raises(SpecDecodeError):
            decode_spec(document)
