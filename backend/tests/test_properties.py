"""
Property-based Testing with Hypothesis.

Name clamping, guest name generation and inbound field coercion.
"""

import json

from hypothesis import given, settings, strategies as st

from chat_gateway.components.connection.guest_names import DEFAULT_CHARSET, GuestNameGenerator
from chat_gateway.components.connection.registry import sanitize_display_name
from chat_gateway.components.core.context import sanitize_log_data
from chat_gateway.components.events.codec import decode_frame
from chat_gateway.components.events.types import SendMessage, SetName, SetTyping


class TestDisplayNameProperties:
    """Property-based tests for display name clamping."""

    @given(name=st.text(max_size=200), max_length=st.integers(min_value=1, max_value=64))
    @settings(max_examples=200)
    def test_clamped_name_is_bounded_and_non_empty(self, name, max_length):
        """Property: result is 1..max_length characters, or the fallback."""
        result = sanitize_display_name(name, max_length=max_length, fallback="Guest")

        if name.strip():
            assert 1 <= len(result) <= max_length
            assert result == name.strip()[:max_length]
        else:
            assert result == "Guest"

    @given(name=st.text(max_size=100))
    def test_clamped_name_never_starts_with_whitespace(self, name):
        """Property: leading whitespace is always trimmed."""
        result = sanitize_display_name(name)
        assert not result[0].isspace()

    @given(value=st.one_of(st.none(), st.integers(), st.floats(allow_nan=False), st.booleans()))
    def test_non_string_names_never_raise(self, value):
        result = sanitize_display_name(value)
        assert isinstance(result, str) and result


class TestGuestNameProperties:
    """Property-based tests for guest name generation."""

    @given(
        taken=st.sets(st.text(alphabet=DEFAULT_CHARSET, min_size=4, max_size=4), max_size=50),
    )
    @settings(max_examples=100)
    def test_generated_name_shape(self, taken):
        """Property: prefix, dash, then suffix_length characters of the charset."""
        names = GuestNameGenerator()
        name = names.generate({f"Guest-{suffix}" for suffix in taken})

        prefix, suffix = name.split("-")
        assert prefix == "Guest"
        assert len(suffix) == 4
        assert set(suffix) <= set(DEFAULT_CHARSET)

    @given(taken_count=st.integers(min_value=0, max_value=3))
    @settings(max_examples=50)
    def test_free_name_found_when_space_is_small(self, taken_count):
        """Property: with one free name left in a 4-name space, enough attempts find it."""
        names = GuestNameGenerator(suffix_length=1, charset="ABCD", max_attempts=500)
        taken = {f"Guest-{c}" for c in "ABCD"[:taken_count]}

        assert names.generate(taken) not in taken


class TestCoercionProperties:
    """Property-based tests for inbound field coercion."""

    @given(text=st.one_of(st.text(), st.integers(), st.none(), st.booleans()))
    def test_message_text_always_string(self, text):
        command = decode_frame(json.dumps({"type": "message", "text": text}))
        assert isinstance(command, SendMessage)
        assert isinstance(command.text, str)

    @given(value=st.one_of(st.booleans(), st.integers(), st.text(), st.none(), st.lists(st.integers())))
    def test_is_typing_strict_bool(self, value):
        command = decode_frame(json.dumps({"type": "typing", "isTyping": value}))
        assert isinstance(command, SetTyping)
        assert command.is_typing is bool(value)

    @given(name=st.text())
    def test_set_name_passes_text_through(self, name):
        assert decode_frame(json.dumps({"type": "set-name", "name": name})) == SetName(name)


class TestLogSanitizationProperties:
    @given(data=st.text(max_size=500))
    def test_no_control_characters_survive(self, data):
        result = sanitize_log_data(data)
        assert not any(ord(c) < 0x20 or 0x7F <= ord(c) <= 0x9F for c in result)
