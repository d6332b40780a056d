"""
Tests for capability tags and capability sets.
"""

import pytest

from mediafallback.core.capabilities import (
    Capability,
    CapabilitySet,
    parse_capabilities,
    static_capabilities,
)
from mediafallback.core.exceptions import ValidationError


class TestCapability:
    def test_parse_accepts_enum_and_string(self):
        assert Capability.parse(Capability.PROXY_SERVER) is Capability.PROXY_SERVER
        assert Capability.parse("proxy_server") is Capability.PROXY_SERVER
        assert Capability.parse("  FFMPEG_SUPPORT ") is Capability.FFMPEG_SUPPORT

    def test_parse_unknown_tag_raises(self):
        with pytest.raises(ValidationError) as exc_info:
            Capability.parse("teleportation")
        assert exc_info.value.field == "capability"
        assert exc_info.value.context["value"] == "teleportation"

    def test_closed_set(self):
        assert {c.value for c in Capability} == {
            "webrtc_support",
            "websocket_support",
            "proxy_server",
            "ffmpeg_support",
            "hardware_acceleration",
        }

    def test_parse_capabilities(self):
        parsed = parse_capabilities(["proxy_server", Capability.FFMPEG_SUPPORT, "proxy_server"])
        assert parsed == frozenset({Capability.PROXY_SERVER, Capability.FFMPEG_SUPPORT})


class TestCapabilitySet:
    def test_absent_tags_are_unavailable(self):
        caps = CapabilitySet.of("proxy_server")
        assert caps["proxy_server"] is True
        assert caps[Capability.WEBRTC_SUPPORT] is False

    def test_explicit_false_flags(self):
        caps = CapabilitySet({"proxy_server": True, "ffmpeg_support": False})
        assert caps.enabled == frozenset({Capability.PROXY_SERVER})
        assert "ffmpeg_support" in caps
        assert len(caps) == 2

    def test_contains_unknown_tag_is_false(self):
        assert "teleportation" not in CapabilitySet.of("proxy_server")

    def test_unknown_tag_in_constructor_raises(self):
        with pytest.raises(ValidationError):
            CapabilitySet({"teleportation": True})

    def test_satisfies_and_missing(self):
        caps = CapabilitySet.of("proxy_server")
        required = {Capability.PROXY_SERVER, Capability.FFMPEG_SUPPORT}
        assert not caps.satisfies(required)
        assert caps.missing(required) == frozenset({Capability.FFMPEG_SUPPORT})
        assert caps.satisfies(set())

    def test_coerce(self):
        existing = CapabilitySet.of("proxy_server")
        assert CapabilitySet.coerce(existing) is existing
        assert CapabilitySet.coerce(None).enabled == frozenset()
        assert CapabilitySet.coerce({"webrtc_support": True}).enabled == {Capability.WEBRTC_SUPPORT}
        assert CapabilitySet.coerce(["ffmpeg_support"]).enabled == {Capability.FFMPEG_SUPPORT}

    def test_to_dict(self):
        caps = CapabilitySet({"proxy_server": True, "ffmpeg_support": False})
        assert caps.to_dict() == {"proxy_server": True, "ffmpeg_support": False}

    def test_static_provider_returns_same_set(self):
        provider = static_capabilities("webrtc_support", "websocket_support")
        first = provider()
        assert first is provider()
        assert first.enabled == {Capability.WEBRTC_SUPPORT, Capability.WEBSOCKET_SUPPORT}
