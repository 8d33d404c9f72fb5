from tickpulse.domain.exceptions.domain_errors import (
    DomainError,
    InvalidPriceError,
    UnknownInstrumentError,
    ValidationError,
)

__all__ = [
    "DomainError",
    "InvalidPriceError",
    "UnknownInstrumentError",
    "ValidationError",
]
