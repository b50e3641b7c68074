"""Decode the payloads printed in merchant benefit QR codes."""

from __future__ import annotations

import base64
import binascii
import json
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qs, urljoin, urlparse

from loguru import logger

from fidelya_api.core.settings import settings

_BASE64_PATTERN = re.compile(r"^[A-Za-z0-9+/]+=*$")
_BARE_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
_MAX_DECODE_DEPTH = 3


@dataclass(frozen=True)
class BenefitCode:
    merchant_id: str
    benefit_id: Optional[str] = None


def _first_param(params: dict[str, list[str]], *names: str) -> Optional[str]:
    for name in names:
        values = params.get(name)
        if values and values[0]:
            return values[0]
    return None


def _parse_url(raw: str, base_url: str) -> Optional[BenefitCode]:
    url = raw if raw.startswith("http") else urljoin(base_url, raw)
    params = parse_qs(urlparse(url).query)
    merchant_id = _first_param(params, "comercio", "c")
    if not merchant_id:
        logger.debug("Benefit code URL has no merchant parameter")
        return None
    return BenefitCode(merchant_id=merchant_id, benefit_id=_first_param(params, "beneficio", "b"))


def _parse_json(raw: str) -> Optional[BenefitCode]:
    try:
        payload = json.loads(raw)
    except ValueError:
        logger.debug("Benefit code looked like JSON but did not parse")
        return None
    if not isinstance(payload, dict):
        return None
    merchant_id = payload.get("comercioId") or payload.get("c")
    if not merchant_id:
        return None
    benefit_id = payload.get("beneficioId") or payload.get("b")
    return BenefitCode(merchant_id=str(merchant_id), benefit_id=str(benefit_id) if benefit_id else None)


def _decode_base64(raw: str) -> Optional[str]:
    try:
        decoded = base64.b64decode(raw, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    if not decoded or not decoded.isprintable():
        return None
    return decoded


def parse_benefit_code(
    raw: str | None,
    *,
    prefix: str | None = None,
    base_url: str | None = None,
    _depth: int = 0,
) -> Optional[BenefitCode]:
    """Resolve a scanned code into a merchant id and optional benefit id.

    Formats are tried in order: validation URL, JSON object, base64 of any
    supported format, bare merchant id and ``PREFIX:merchant[:benefit]``.
    Returns ``None`` when nothing matches.
    """

    if raw is None:
        return None
    text = raw.strip()
    if not text:
        return None
    prefix = (prefix or settings.benefit_code_prefix).upper()
    base_url = base_url or settings.benefit_code_base_url

    if "validar-beneficio" in text or "/validar" in text:
        return _parse_url(text, base_url)

    if text.startswith("{") and text.endswith("}"):
        return _parse_json(text)

    if _depth < _MAX_DECODE_DEPTH and _BASE64_PATTERN.match(text):
        decoded = _decode_base64(text)
        if decoded is not None:
            nested = parse_benefit_code(decoded, prefix=prefix, base_url=base_url, _depth=_depth + 1)
            if nested is not None:
                return nested

    if 10 < len(text) < 50 and _BARE_ID_PATTERN.match(text):
        return BenefitCode(merchant_id=text)

    if text.startswith(f"{prefix}:"):
        parts = text.split(":")
        if parts[1]:
            benefit_id = parts[2] if len(parts) > 2 and parts[2] else None
            return BenefitCode(merchant_id=parts[1], benefit_id=benefit_id)

    logger.debug("Unrecognized benefit code format", sample=text[:50])
    return None


__all__ = ["BenefitCode", "parse_benefit_code"]
