"""Static validation of connection parameters.

Contains:
- validate_config: base rules every ConnectionConfig must satisfy
- is_standard_baud_rate: informational check against the reference rates
- ConfigValidator: optional allow-list / timeout policy layered on the base rules
"""

from __future__ import annotations

import logging
import math
from typing import Iterable, List, Optional

from .errors import ValidationCode, ValidationError
from .interfaces import VALID_PARITIES, ConnectionConfig

logger = logging.getLogger(__name__)

STANDARD_BAUD_RATES = (
    110, 300, 600, 1200, 2400, 4800, 9600, 14400, 19200, 38400,
    57600, 115200, 128000, 230400, 256000, 460800, 500000, 576000,
    921600, 1000000, 1152000, 1500000, 2000000, 2500000, 3000000,
    3500000, 4000000,
)

SPECIAL_BAUD_RATES = (
    74880,    # ESP8266 boot ROM
    250000,   # 3D printers
    876000,   # some USB-UART bridges
    1843200,  # high speed UART
)

COMMON_BAUD_RATES = (
    300, 600, 1200, 2400, 4800, 9600, 14400, 19200, 38400,
    57600, 115200, 230400, 460800, 500000, 576000, 921600,
    1000000, 1500000, 2000000, 3000000, 4000000,
)

DEFAULT_ALLOWED_BAUD_RATES = (9600, 19200, 38400, 57600, 115200, 230400, 460800, 921600)
DEFAULT_MAX_TIMEOUT = 300.0


def common_baud_rates() -> List[int]:
    return list(COMMON_BAUD_RATES)


def special_baud_rates() -> List[int]:
    return list(SPECIAL_BAUD_RATES)


def is_valid_baud_rate(baud_rate) -> bool:
    """Any positive integer is a valid baud rate."""
    return isinstance(baud_rate, int) and not isinstance(baud_rate, bool) and baud_rate > 0


def is_standard_baud_rate(baud_rate: int) -> bool:
    return baud_rate in STANDARD_BAUD_RATES or baud_rate in SPECIAL_BAUD_RATES


def validate_config(config: ConnectionConfig) -> None:
    """
    Check config against the base rules.

    Args:
        config: Configuration to check.

    Raises:
        ValidationError: On the first failing rule, with a ValidationCode.
    """
    if not config.endpoint:
        raise ValidationError(ValidationCode.EMPTY_ENDPOINT, "endpoint cannot be empty")

    if not is_valid_baud_rate(config.baud_rate):
        raise ValidationError(
            ValidationCode.INVALID_BAUD_RATE,
            f"baud rate must be a positive integer, got: {config.baud_rate!r}",
        )
    if not is_standard_baud_rate(config.baud_rate):
        # Accepted; actual support depends on the hardware.
        logger.debug("Non-standard baud rate %d for %s", config.baud_rate, config.endpoint)

    if not isinstance(config.data_bits, int) or not 5 <= config.data_bits <= 8:
        raise ValidationError(
            ValidationCode.INVALID_DATA_BITS,
            f"data bits must be between 5 and 8, got: {config.data_bits!r}",
        )

    if config.stop_bits not in (1, 2):
        raise ValidationError(
            ValidationCode.INVALID_STOP_BITS,
            f"stop bits must be 1 or 2, got: {config.stop_bits!r}",
        )

    if config.parity not in VALID_PARITIES:
        raise ValidationError(ValidationCode.INVALID_PARITY, f"invalid parity: {config.parity!r}")

    timeout = config.timeout
    if (not isinstance(timeout, (int, float)) or isinstance(timeout, bool)
            or not 0 <= timeout < math.inf):
        raise ValidationError(
            ValidationCode.NEGATIVE_TIMEOUT,
            f"timeout must be a finite number >= 0, got: {timeout!r}",
        )


class ConfigValidator:
    """
    Extended validation policy composed on top of validate_config().

    Usage:
        validator = ConfigValidator()
        validator.set_allowed_endpoints(["/dev/ttyUSB0", "/dev/ttyUSB1"])
        validator.validate(config)

    Defaults mirror a conservative deployment: a fixed list of allowed baud
    rates and a required, non-zero timeout of at most five minutes. Pass an
    empty list to lift an allow-list.
    """

    def __init__(
        self,
        allowed_endpoints: Optional[Iterable[str]] = None,
        allowed_baud_rates: Optional[Iterable[int]] = DEFAULT_ALLOWED_BAUD_RATES,
        require_timeout: bool = True,
        max_timeout: float = DEFAULT_MAX_TIMEOUT,
    ):
        self._allowed_endpoints: List[str] = list(allowed_endpoints or [])
        self._allowed_baud_rates: List[int] = list(allowed_baud_rates or [])
        self._require_timeout = require_timeout
        self._max_timeout = max_timeout

    @property
    def allowed_endpoints(self) -> List[str]:
        return list(self._allowed_endpoints)

    @property
    def allowed_baud_rates(self) -> List[int]:
        return list(self._allowed_baud_rates)

    def set_allowed_endpoints(self, endpoints: Iterable[str]) -> None:
        self._allowed_endpoints = list(endpoints)

    def set_allowed_baud_rates(self, baud_rates: Iterable[int]) -> None:
        self._allowed_baud_rates = list(baud_rates)

    def set_timeout_requirement(self, required: bool, max_timeout: float) -> None:
        self._require_timeout = required
        self._max_timeout = max_timeout

    def validate(self, config: ConnectionConfig) -> None:
        validate_config(config)

        if self._allowed_endpoints and config.endpoint not in self._allowed_endpoints:
            raise ValidationError(
                ValidationCode.ENDPOINT_NOT_ALLOWED,
                f"endpoint {config.endpoint} is not in the allowed endpoints list",
            )

        if self._allowed_baud_rates and config.baud_rate not in self._allowed_baud_rates:
            raise ValidationError(
                ValidationCode.BAUD_RATE_NOT_ALLOWED,
                f"baud rate {config.baud_rate} is not in the allowed baud rates list",
            )

        if self._require_timeout and config.timeout <= 0:
            raise ValidationError(ValidationCode.TIMEOUT_REQUIRED, "timeout is required but not set")

        if config.timeout > self._max_timeout:
            raise ValidationError(
                ValidationCode.TIMEOUT_TOO_LARGE,
                f"timeout {config.timeout}s exceeds maximum allowed timeout {self._max_timeout}s",
            )
