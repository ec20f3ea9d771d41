__all__ = [
    # Addresses
    "Address",
    "AddressError",
    "InvalidChecksumError",
    "InvalidLengthError",
    "InvalidCharacterError",
    "InvalidHexError",
    "ZERO_ADDRESS",
    "is_valid_address",
    # ABI
    "AbiError",
    "UnknownTypeError",
    "TypeMismatchError",
    "EncodingError",
    "DecodingError",
    "TruncatedDataError",
    "InvalidEncodingError",
    "parse_type",
    "parse_signature",
    "function_signature",
    "coerce_value",
    "encode_arguments",
    "encode_call",
    "method_selector",
    "decode_result",
    "decode_arguments",
    # Transactions
    "UnsignedTransaction",
    "SignedTransaction",
    "TransactionFinalizer",
    "FinalizerState",
    "TransactionError",
    "ImmutableAfterSignError",
    "StaleHashError",
    "finalize",
    # Signing
    "KeyStore",
    "SigningError",
    "recover_address",
    "load_private_key",
    "save_private_key",
    # Node client
    "ClientConfig",
    "TronClient",
    "RpcError",
    "ContractExecutionError",
    "BroadcastError",
    "ContractCaller",
    "Trc20Token",
    "send_trx",
]

from .config import ClientConfig
from .pneuma.abi import (
    DecodingError,
    EncodingError,
    InvalidEncodingError,
    TruncatedDataError,
    TypeMismatchError,
    coerce_value,
    decode_arguments,
    decode_result,
    encode_arguments,
    encode_call,
    method_selector,
)
from .pneuma.abi_types import (
    AbiError,
    UnknownTypeError,
    function_signature,
    parse_signature,
    parse_type,
)
from .pneuma.contract import ContractCaller, send_trx
from .pneuma.rpc import BroadcastError, ContractExecutionError, RpcError, TronClient
from .pneuma.trc20 import Trc20Token
from .pneuma.tx import (
    FinalizerState,
    ImmutableAfterSignError,
    SignedTransaction,
    StaleHashError,
    TransactionError,
    TransactionFinalizer,
    UnsignedTransaction,
    finalize,
)
from .sigil.address import (
    ZERO_ADDRESS,
    Address,
    AddressError,
    InvalidCharacterError,
    InvalidChecksumError,
    InvalidHexError,
    InvalidLengthError,
    is_valid_address,
)
from .sigil.keystore import (
    KeyStore,
    SigningError,
    load_private_key,
    recover_address,
    save_private_key,
)
