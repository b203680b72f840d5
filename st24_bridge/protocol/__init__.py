"""ST24 command/response protocol: collection, sequencing and decoding."""

from .collector import (
    START_SENTINEL,
    TERMINAL_SENTINELS,
    CollectorState,
    ResponseAssembler,
    ResponseCollector,
    encode_command,
)
from .parsers import (
    PARSERS,
    parse_attitude,
    parse_block,
    parse_inclinometer,
    parse_position,
    parse_signal,
    parse_status,
)
from .sequencer import (
    CommandSequencer,
    CommandStep,
    NotConnectedError,
    SequencerBusyError,
    SequencerError,
    build_poll_steps,
)
from .snapshot import assemble_snapshot

__all__ = [
    "PARSERS",
    "START_SENTINEL",
    "TERMINAL_SENTINELS",
    "CollectorState",
    "CommandSequencer",
    "CommandStep",
    "NotConnectedError",
    "ResponseAssembler",
    "ResponseCollector",
    "SequencerBusyError",
    "SequencerError",
    "assemble_snapshot",
    "build_poll_steps",
    "encode_command",
    "parse_attitude",
    "parse_block",
    "parse_inclinometer",
    "parse_position",
    "parse_signal",
    "parse_status",
]
