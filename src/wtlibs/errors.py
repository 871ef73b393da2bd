from __future__ import annotations

from typing import Iterable, Optional


class WTLibsError(RuntimeError):
    exit_code: int = 1


class ConfigError(WTLibsError):
    exit_code = 2


class InputDataError(WTLibsError):
    exit_code = 3

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class NotDeployedError(WTLibsError):
    """Remote access attempted before the record exists on the ledger."""

    exit_code = 4


class ObsoleteRecordError(WTLibsError):
    """Access attempted after the record was destroyed on the ledger."""

    exit_code = 4


class RemoteDataReadError(WTLibsError):
    exit_code = 5

    def __init__(self, message: str, uri: Optional[str] = None) -> None:
        super().__init__(message)
        self.uri = uri


class RemoteWriteError(WTLibsError):
    exit_code = 6

    def __init__(self, message: str, fields: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.fields = tuple(fields)


class SchemaResolutionError(WTLibsError):
    exit_code = 5

    def __init__(
        self,
        message: str,
        uri: Optional[str] = None,
        field: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.uri = uri
        self.field = field


class UnsupportedStorageError(WTLibsError):
    exit_code = 2


class SmartContractInstantiationError(WTLibsError):
    exit_code = 7


class HotelNotFoundError(WTLibsError):
    exit_code = 8


class HotelNotInstantiableError(WTLibsError):
    exit_code = 8


class AirlineNotFoundError(WTLibsError):
    exit_code = 8


class RpcError(WTLibsError):
    exit_code = 9


class TransactionFailedError(WTLibsError):
    exit_code = 9

    def __init__(self, message: str, tx_hash: Optional[str] = None) -> None:
        super().__init__(message)
        self.tx_hash = tx_hash


__all__ = [
    "AirlineNotFoundError",
    "ConfigError",
    "HotelNotFoundError",
    "HotelNotInstantiableError",
    "InputDataError",
    "NotDeployedError",
    "ObsoleteRecordError",
    "RemoteDataReadError",
    "RemoteWriteError",
    "RpcError",
    "SchemaResolutionError",
    "SmartContractInstantiationError",
    "TransactionFailedError",
    "UnsupportedStorageError",
    "WTLibsError",
]
