"""Reader for Pikmin 2 conductor (``.cnd``) files."""

from .container import (  # noqa: F401
    FIRST_TRACK_OFFSET,
    HEADER_SIZE,
    RESERVED_SIZE,
    TRACK_RECORD_SIZE,
    ByteReader,
    Conductor,
    ConductorHeader,
    read_header,
)
from .errors import (  # noqa: F401
    ConductorError,
    InvalidBank,
    InvalidTrackCount,
    TruncatedInput,
)
from .structs import (  # noqa: F401
    BANK_LABELS,
    DESCRIPTION_PLACEHOLDER,
    DESCRIPTION_SENTINEL,
    TRACK_BODY_SIZE,
    TRACK_TRAILER_SIZE,
    Bank,
    Track,
    decode_description,
    decode_panning,
    to_signed8,
)
