"""
Application constants.
Centralized location for all constant values used across the application.
"""

from enum import IntEnum, StrEnum


class ActionCode(IntEnum):
    """
    Delta action codes.

    The numeric values are part of the wire protocol and must not change.
    FULL_SNAPSHOT is only ever synthesized during reconciliation and is
    never accepted from a caller or stored in the delta log.
    """

    SWAP = 0
    DELETE_AT = 1
    MOVE_TO = 2
    APPEND = 3
    REPLACE_AT = 4
    FULL_SNAPSHOT = 5
    CLEAR_ALL = 6


class RejectReason(StrEnum):
    """Reasons a proposed delta is refused."""

    MALFORMED_DELTA = "malformed_delta"
    INDEX_OUT_OF_RANGE = "index_out_of_range"
    MISSING_MEDIA = "missing_media"
    UNKNOWN_ACTION_CODE = "unknown_action_code"
    QUEUE_FULL = "queue_full"


class SyncKind(StrEnum):
    """Kinds of synchronization plan."""

    REPLAY = "replay"
    SNAPSHOT = "snapshot"


class AdvanceStatus(StrEnum):
    """Outcome of advancing the queue to the next item."""

    ADVANCED = "advanced"
    UNCHANGED = "unchanged"
    EMPTY = "empty"


# Number of indexes each action consumes
ACTION_INDEX_COUNT: dict[ActionCode, int] = {
    ActionCode.SWAP: 2,
    ActionCode.DELETE_AT: 1,
    ActionCode.MOVE_TO: 2,
    ActionCode.APPEND: 0,
    ActionCode.REPLACE_AT: 1,
    ActionCode.CLEAR_ALL: 0,
}

# Actions that carry a media payload
MEDIA_ACTIONS = frozenset({ActionCode.APPEND, ActionCode.REPLACE_AT})

# Default values
DEFAULT_DELTA_BUFFER_MAX = 50
UNLIMITED_QUEUE = -1

# API constants
API_V1_PREFIX = "/v1"
MEDIA_CLIENT_QUERY_PARAM = "media_client"

# Metrics names
METRIC_QUEUE_LENGTH = "queue_length"
METRIC_QUEUE_VERSION = "queue_version"
METRIC_DELTAS_APPLIED = "queue_deltas_applied_total"
METRIC_DELTAS_REJECTED = "queue_deltas_rejected_total"
METRIC_DELTAS_EVICTED = "queue_deltas_evicted_total"
METRIC_SYNC_PLANS = "queue_sync_plans_total"
METRIC_WS_CONNECTIONS = "ws_connections"
METRIC_API_REQUESTS = "api_requests_total"
METRIC_API_LATENCY = "api_request_latency_seconds"

# Trace span names
SPAN_PROPOSE_DELTA = "propose_delta"
SPAN_ADVANCE_QUEUE = "advance_queue"
SPAN_RECONCILE = "reconcile"

# WebSocket event types, client -> server
WS_EVENT_GET_ALL = "get all"
WS_EVENT_PROPOSE = "propose"
WS_EVENT_SYNC = "sync"
WS_EVENT_PLAY = "play"
WS_EVENT_PAUSE = "pause"
WS_EVENT_NEXT = "next"
WS_EVENT_VOLUME_EDIT = "volume edit"
WS_EVENT_MEDIA_ENDED = "media ended"
WS_EVENT_PING = "ping"

# WebSocket event types, server -> client
WS_EVENT_GREET = "greet"
WS_EVENT_GOOD_DELTA = "good delta"
WS_EVENT_BAD_DELTA = "bad delta"
WS_EVENT_DELTA_UPDATE = "delta update"
WS_EVENT_SET_URL = "set url"
WS_EVENT_VOLUME = "volume"
WS_EVENT_PONG = "pong"
WS_EVENT_ERROR = "error"

# Close code used when a second media client tries to connect
WS_CLOSE_POLICY_VIOLATION = 1008
