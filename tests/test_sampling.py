"""Tests for sampler selection."""

from __future__ import annotations

import pytest
from opentelemetry.sdk.trace.sampling import ALWAYS_OFF, ALWAYS_ON, TraceIdRatioBased

from teleboot.errors import TelemetryConfigError, UnknownSampler
from teleboot.sampling import select_sampler
from teleboot.schema import SamplerConfig


class TestSelectSampler:
    def test_absent_section_defaults_to_always_on(self):
        assert select_sampler(None) is ALWAYS_ON

    @pytest.mark.parametrize("name", [None, ""])
    def test_empty_name_defaults_to_always_on(self, name):
        assert select_sampler(SamplerConfig(name=name)) is ALWAYS_ON

    def test_always_on(self):
        assert select_sampler(SamplerConfig(name="AlwaysOn")) is ALWAYS_ON

    def test_always_off(self):
        assert select_sampler(SamplerConfig(name="AlwaysOff")) is ALWAYS_OFF

    def test_ratio_based(self):
        sampler = select_sampler(SamplerConfig(name="TraceIdRatioBased", ratio=0.5))
        assert isinstance(sampler, TraceIdRatioBased)
        assert sampler.rate == 0.5

    def test_ratio_defaults_to_one(self):
        sampler = select_sampler(SamplerConfig(name="TraceIdRatioBased"))
        assert isinstance(sampler, TraceIdRatioBased)
        assert sampler.rate == 1.0

    def test_ratio_ignored_for_other_strategies(self):
        assert select_sampler(SamplerConfig(name="AlwaysOff", ratio=0.3)) is ALWAYS_OFF

    def test_names_are_case_insensitive(self):
        assert select_sampler(SamplerConfig(name="alwaysoff")) is ALWAYS_OFF

    def test_unknown_name(self):
        with pytest.raises(UnknownSampler, match="Bogus") as exc_info:
            select_sampler(SamplerConfig(name="Bogus"))
        assert exc_info.value.name == "Bogus"
        assert isinstance(exc_info.value, TelemetryConfigError)
