"""
Protocol constants shared by the codec, the registry client and the validator.

Changing any tag, length or tree height breaks every historical commitment
and every on-chain root, so these are fixed per protocol version.
"""

from __future__ import annotations

from typing import Dict, Tuple

# --- Registries ----------------------------------------------------------------

CERTIFICATE_REGISTRY_ID = 1
CIRCUIT_REGISTRY_ID = 2

CERTIFICATE_REGISTRY_HEIGHT = 16
CIRCUIT_REGISTRY_HEIGHT = 12

DEFAULT_HISTORICAL_ROOTS_PAGE_SIZE = 100

# Function selectors taken from the deployed root registry / helper contracts.
LATEST_ROOT_SELECTOR = "0xc3bc16e8"  # latestRoot(bytes32)
GET_HISTORICAL_ROOTS_SELECTOR = "0x06ac4103"  # getHistoricalRoots(bytes32,uint256,uint256)
GET_LATEST_ROOT_DETAILS_SELECTOR = "0x76785af8"  # getLatestRootDetails(bytes32)

# Selectors derived from their signatures at import (see types/abi.py).
REGISTRIES_SIGNATURE = "registries(bytes32)"
IS_ROOT_VALID_SIGNATURE = "isRootValid(bytes32,bytes32,uint256)"
GET_ROOT_DETAILS_SIGNATURE = "getRootDetails(bytes32,bytes32)"

# Certificate leaf encoding
CERT_TYPE_CSCA = 1
CERT_TYPE_DSC = 2
CERTIFICATE_TAG_BITS = 253

HASH_ALGORITHM_IDS: Dict[str, int] = {
    "SHA-1": 1,
    "SHA-224": 2,
    "SHA-256": 3,
    "SHA-384": 4,
    "SHA-512": 5,
}

# --- Dates ---------------------------------------------------------------------

SECONDS_PER_DAY = 24 * 60 * 60
DEFAULT_VALIDITY = 7 * SECONDS_PER_DAY
# Birthdate circuits count from 1900-01-01 so pre-1970 dates stay positive.
SECONDS_BETWEEN_1900_AND_1970 = 2208988800
# Unix seconds of 0001-01-01 and 9999-12-31T23:59:59Z, the span a calendar date can hold.
MIN_DATE_TIMESTAMP = -62135596800
MAX_DATE_TIMESTAMP = 253402300799
DEFAULT_DATE_VALUE = 0

# --- Claim payloads ------------------------------------------------------------

MAX_COUNTRY_LIST_LENGTH = 200
COUNTRY_CODE_PADDING = "\x00\x00\x00"
DISCLOSED_BYTES_LENGTH = 90
BOUND_DATA_MAX_LENGTH = 509

# Bound data TLV tags
BOUND_DATA_USER_ADDRESS = 1
BOUND_DATA_CHAIN = 2
BOUND_DATA_CUSTOM_DATA = 3

# (standard_length, evm_length) keyed by claim tag
CLAIM_PAYLOAD_LENGTHS: Dict[int, Tuple[int, int]] = {
    0: (4, 180),  # disclose
    1: (2, 2),  # age
    2: (2, 16),  # birthdate
    3: (2, 16),  # expiry date
    4: (200, 600),  # nationality inclusion
    5: (200, 600),  # nationality exclusion
    6: (200, 600),  # issuing country inclusion
    7: (200, 600),  # issuing country exclusion
    8: (17, 509),  # bind
    9: (2, 33),  # sanctions exclusion
    10: (5, 98),  # facematch
}

# --- Facematch trust anchors ---------------------------------------------------

# Hash of the root key of Apple's App Attest
APPLE_APP_ATTEST_ROOT_KEY_HASH = (
    "0x2532418a107c5306fa8308c22255792cf77e4a290cbce8a840a642a3e591340b"
)
# Hash of the iOS app id `YL5MS3Z639.app.zkpassport.zkpassport`
IOS_APP_ID_HASH = "0x1fa73686cf510f8f85757b0602de0dd72a13e68ae2092462be8b72662e7f179b"

FACEMATCH_ENV_DEVELOPMENT = 0
FACEMATCH_ENV_PRODUCTION = 1
FACEMATCH_MODE_REGULAR = 1
FACEMATCH_MODE_STRICT = 2

# --- Chains --------------------------------------------------------------------

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

CHAIN_CONFIG: Dict[int, Dict[str, str]] = {
    1: {
        "rpc_url": "https://ethereum-rpc.publicnode.com",
        "root_registry": ZERO_ADDRESS,
        "registry_helper": ZERO_ADDRESS,
        "certificates_url": "https://certificates.zkpassport.id/packaged",
        "circuits_url": "https://circuits.zkpassport.id",
    },
    11155111: {
        "rpc_url": "https://ethereum-sepolia-rpc.publicnode.com",
        "root_registry": "0x9d60e8c4796199535b860fcf814ca90eda93cac1",
        "registry_helper": "0xc46b1336b8f3cfd46a3ad3e735fef6eb4252f229",
        "certificates_url": "https://certificates.zkpassport.id/packaged",
        "circuits_url": "https://circuits.zkpassport.id",
    },
    31337: {
        "rpc_url": "http://localhost:8545",
        "root_registry": "0x5FbDB2315678afecb367f032d93F642f64180aa3",
        "registry_helper": "0xe7f1725E7734CE288F8367e1Bb143E90bb3F0512",
        "certificates_url": "http://localhost:3000/certificates",
        "circuits_url": "http://localhost:3000/circuits",
    },
}
