"""Redemption failures surfaced to callers as structured results."""

from __future__ import annotations

from enum import Enum


class StatusGateKind(str, Enum):
    SUSPENDED = "suspended"
    EXPIRED = "expired"
    INACTIVE = "inactive"
    MISSING = "missing"
    OTHER = "other"


MEMBER_NOT_FOUND_MESSAGE = "Socio no encontrado en el sistema"
MERCHANT_NOT_FOUND_MESSAGE = "Comercio no encontrado o no disponible"
NO_ELIGIBLE_BENEFIT_MESSAGE = "No hay beneficios disponibles en este comercio en este momento"
UNKNOWN_FAILURE_MESSAGE = "Error desconocido durante la validación"
SUCCESS_MESSAGE = "¡Beneficio validado exitosamente!"

_STATUS_MESSAGES = {
    StatusGateKind.MISSING: "Datos de socio inválidos: estado no definido",
    StatusGateKind.SUSPENDED: "Tu cuenta está suspendida. Contacta al administrador para más información.",
    StatusGateKind.EXPIRED: (
        "No puedes validar beneficios porque tu membresía está vencida. "
        "Contacta a tu asociación para regularizar tu situación."
    ),
    StatusGateKind.INACTIVE: "Tu cuenta está inactiva. Contacta al administrador para activarla.",
}


class RedemptionError(RuntimeError):
    """Base error for a rejected redemption; ``message`` is user-facing."""

    error_kind = "redemption_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class MemberNotFoundError(RedemptionError):
    error_kind = "member_not_found"

    def __init__(self, member_id: str) -> None:
        super().__init__(MEMBER_NOT_FOUND_MESSAGE)
        self.member_id = member_id


class MerchantNotFoundError(RedemptionError):
    error_kind = "merchant_not_found"

    def __init__(self, merchant_id: str) -> None:
        super().__init__(MERCHANT_NOT_FOUND_MESSAGE)
        self.merchant_id = merchant_id


class MemberStatusError(RedemptionError):
    """Member status is anything other than ``active``."""

    error_kind = "member_status"

    def __init__(self, status_kind: StatusGateKind, status: str | None) -> None:
        message = _STATUS_MESSAGES.get(status_kind)
        if message is None:
            message = f'Tu cuenta tiene estado "{status}". Solo los socios activos pueden validar beneficios.'
        super().__init__(message)
        self.status_kind = status_kind
        self.status = status


class NoEligibleBenefitError(RedemptionError):
    error_kind = "no_eligible_benefit"

    def __init__(self, merchant_id: str) -> None:
        super().__init__(NO_ELIGIBLE_BENEFIT_MESSAGE)
        self.merchant_id = merchant_id


class BenefitUnavailableError(RedemptionError):
    """Raised for soft-check violations when permissive mode is off."""

    error_kind = "benefit_unavailable"

    def __init__(self, benefit_id: str, flags: list[str]) -> None:
        super().__init__(f"El beneficio no está disponible ({', '.join(flags)})")
        self.benefit_id = benefit_id
        self.flags = list(flags)


__all__ = [
    "BenefitUnavailableError",
    "MemberNotFoundError",
    "MemberStatusError",
    "MerchantNotFoundError",
    "NoEligibleBenefitError",
    "RedemptionError",
    "StatusGateKind",
    "SUCCESS_MESSAGE",
    "UNKNOWN_FAILURE_MESSAGE",
]
