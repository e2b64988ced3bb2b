"""
Parameter commitments.

    from zkid_sdk.commitments import parameter_commitment
    parameter_commitment(AgeInput(min_age=18, max_age=0))            # standard
    parameter_commitment(AgeInput(min_age=18, max_age=0), evm=True)  # EVM
"""

from .bind import format_bound_data
from .codec import (COMMITMENT_HANDLERS, evm_commitment, parameter_commitment,
                    payload_bytes, payload_fields, standard_commitment)

__all__ = [
    "COMMITMENT_HANDLERS",
    "parameter_commitment",
    "standard_commitment",
    "evm_commitment",
    "payload_fields",
    "payload_bytes",
    "format_bound_data",
]
