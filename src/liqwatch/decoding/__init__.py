"""Event decoding.

This package provides:
- ABI word primitives (address/uint/int parsing, strict data decoding)
- Event layouts (EventLayout, TopicFieldSpec, DataFieldSpec) parsed from signatures
- Fixed layouts for every supported event kind
- `decode_log`: raw log → typed event variant
"""

from liqwatch.decoding.decoder import decode_fields, decode_log
from liqwatch.decoding.layouts import LAYOUTS, SIGNATURES, layout_for
from liqwatch.decoding.specs import (
    DataFieldSpec,
    EventLayout,
    TopicFieldSpec,
    canonical_signature,
    parse_signature,
    topic_hash,
)

__all__ = [
    "decode_fields",
    "decode_log",
    "LAYOUTS",
    "SIGNATURES",
    "layout_for",
    "DataFieldSpec",
    "EventLayout",
    "TopicFieldSpec",
    "canonical_signature",
    "parse_signature",
    "topic_hash",
]
