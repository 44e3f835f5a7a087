"""Shared helpers for the SPUD test-suite."""

from __future__ import annotations

import json

import pytest

from spud import SpudBuilder, SpudDecoder

OID = bytes(range(20, 30))


def roundtrip(value):
    builder = SpudBuilder()
    builder.object().add_value("v", value)
    return json.loads(SpudDecoder(builder.encode()).decode())["v"]


def single_field_body(value) -> bytes:
    builder = SpudBuilder()
    builder.object().add_value("v", value)
    return builder.flush()


@pytest.fixture
def builder() -> SpudBuilder:
    return SpudBuilder()
