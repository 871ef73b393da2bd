__all__ = [
    # Dataset
    "FieldBinding",
    "FieldKind",
    "LifecycleState",
    "PreparedOperation",
    "RemotelyBackedDataset",
    # Storage pointers
    "FieldSchema",
    "StoragePointer",
    # Off-chain data
    "AdapterSpec",
    "HttpAdapter",
    "InMemoryAdapter",
    "LocalDirAdapter",
    "OffChainDataAdapter",
    "OffChainDataClient",
    # Chain
    "JsonRpcClient",
    "PreparedTransaction",
    "TransactionCallbacks",
    "sign_and_send",
    # Entities
    "JsonWTIndex",
    "OnChainAirline",
    "OnChainHotel",
    "WTIndex",
    "WTLibs",
    "WTLibsConfig",
    # Errors
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

from .chain.rpc import JsonRpcClient
from .chain.tx import PreparedTransaction, TransactionCallbacks, sign_and_send
from .config import WTLibsConfig
from .dataset import (
    FieldBinding,
    FieldKind,
    LifecycleState,
    PreparedOperation,
    RemotelyBackedDataset,
)
from .errors import (
    AirlineNotFoundError,
    ConfigError,
    HotelNotFoundError,
    HotelNotInstantiableError,
    InputDataError,
    NotDeployedError,
    ObsoleteRecordError,
    RemoteDataReadError,
    RemoteWriteError,
    RpcError,
    SchemaResolutionError,
    SmartContractInstantiationError,
    TransactionFailedError,
    UnsupportedStorageError,
    WTLibsError,
)
from .libs import WTLibs
from .models import JsonWTIndex, OnChainAirline, OnChainHotel, WTIndex
from .offchain import (
    AdapterSpec,
    HttpAdapter,
    InMemoryAdapter,
    LocalDirAdapter,
    OffChainDataAdapter,
    OffChainDataClient,
)
from .pointer import FieldSchema, StoragePointer
