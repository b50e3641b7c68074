import base64
import json

import pytest

from fidelya_api.services.redemptions import BenefitCode, parse_benefit_code


def _b64(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("https://fidelya.com/validar-beneficio?comercio=m-1&beneficio=b-1", BenefitCode("m-1", "b-1")),
        ("https://fidelya.com/validar?c=m-1&b=b-1", BenefitCode("m-1", "b-1")),
        ("/validar-beneficio?comercio=m-1", BenefitCode("m-1")),
        ('{"comercioId": "m-1", "beneficioId": "b-1"}', BenefitCode("m-1", "b-1")),
        ('{"c": "m-1"}', BenefitCode("m-1")),
        ("comercio_0001", BenefitCode("comercio_0001")),
        ("FIDELYA:m-1:b-1", BenefitCode("m-1", "b-1")),
        ("FIDELYA:m-1", BenefitCode("m-1")),
        ("FIDELYA:m-1:", BenefitCode("m-1")),
        ("  FIDELYA:m-1  ", BenefitCode("m-1")),
    ],
)
def test_supported_formats(raw, expected) -> None:
    assert parse_benefit_code(raw) == expected


def test_base64_wraps_any_supported_format() -> None:
    payload = json.dumps({"comercioId": "m-1", "beneficioId": "b-1"})

    assert parse_benefit_code(_b64(payload)) == BenefitCode("m-1", "b-1")
    assert parse_benefit_code(_b64("FIDELYA:m-2")) == BenefitCode("m-2")
    assert parse_benefit_code(_b64(_b64("FIDELYA:m-3:b-3"))) == BenefitCode("m-3", "b-3")


def test_custom_prefix_and_base_url() -> None:
    assert parse_benefit_code("TIENDA:m-1:b-2", prefix="tienda") == BenefitCode("m-1", "b-2")
    assert parse_benefit_code("FIDELYA:m-1", prefix="tienda") is None
    assert parse_benefit_code(
        "validar-beneficio?c=m-9", base_url="https://club.example.org/"
    ) == BenefitCode("m-9")


@pytest.mark.parametrize(
    "raw",
    [
        None,
        "",
        "   ",
        "corto",
        "hola mundo!",
        "https://fidelya.com/validar-beneficio?beneficio=b-1",
        "{no es json}",
        '["m-1"]',
        '{"beneficioId": "b-1"}',
        "FIDELYA::b-1",
        "x" * 60,
    ],
)
def test_unrecognized_codes_return_none(raw) -> None:
    assert parse_benefit_code(raw) is None
