"""
Protocol-level constants for forwarded-header processing.

These values are fixed by RFC 7239 or by the ASGI scope layout and should
NEVER be changed via environment variables or configuration.

For configurable values (header names, proxy patterns, ports, etc.),
see remote_ip/settings.py where values can be overridden via environment
variables.
"""

# ============================================================================
# RFC 7239 Forwarded Header
# ============================================================================

FORWARDED_HEADER = "Forwarded"

# The four directives defined by RFC 7239, section 5
DIRECTIVE_BY = "by"
DIRECTIVE_FOR = "for"
DIRECTIVE_HOST = "host"
DIRECTIVE_PROTO = "proto"

KNOWN_DIRECTIVES = frozenset(
    {DIRECTIVE_BY, DIRECTIVE_FOR, DIRECTIVE_HOST, DIRECTIVE_PROTO}
)

# Directives whose values are node or host identifiers
ADDRESS_DIRECTIVES = frozenset({DIRECTIVE_BY, DIRECTIVE_FOR, DIRECTIVE_HOST})

# Identifier a proxy uses when it withholds its address
UNKNOWN_IDENTIFIER = "unknown"

# Prefix of obfuscated node names and ports (RFC 7239, section 6.3)
OBFUSCATED_PREFIX = "_"

# Only schemes accepted in a proto directive
ACCEPTED_PROTOCOLS = frozenset({"http", "https"})


# ============================================================================
# Default Proxy Patterns
# ============================================================================

# Full-match pattern for addresses belonging to our own infrastructure:
# 10/8, 192.168/16, 169.254/16, 127/8, 172.16/12 and IPv6 loopback
DEFAULT_INTERNAL_PROXIES = (
    r"10\.\d{1,3}\.\d{1,3}\.\d{1,3}|"
    r"192\.168\.\d{1,3}\.\d{1,3}|"
    r"169\.254\.\d{1,3}\.\d{1,3}|"
    r"127\.\d{1,3}\.\d{1,3}\.\d{1,3}|"
    r"172\.1[6-9]\.\d{1,3}\.\d{1,3}|"
    r"172\.2[0-9]\.\d{1,3}\.\d{1,3}|"
    r"172\.3[0-1]\.\d{1,3}\.\d{1,3}|"
    r"0:0:0:0:0:0:0:1|::1"
)


# ============================================================================
# ASGI Scope Layout
# ============================================================================

# Scope types the middleware rewrites; everything else passes through
HANDLED_SCOPE_TYPES = frozenset({"http", "websocket"})

SECURE_SCHEMES = frozenset({"https", "wss"})

# Keys stored in scope["state"] (exposed as request.state.<key>)
STATE_REMOTE_HOST = "remote_host"
STATE_REQUEST_FORWARDED = "request_forwarded"
STATE_SUSPENDED = "remote_ip_suspended"

# Access-log attributes published when REQUEST_ATTRIBUTES_ENABLED is set,
# stored as a dict under scope["state"]["access_log"]
STATE_ACCESS_LOG = "access_log"
ATTR_REMOTE_ADDR = "remote_addr"
ATTR_REMOTE_HOST = "remote_host"
ATTR_PROTOCOL = "protocol"
ATTR_SERVER_NAME = "server_name"
ATTR_SERVER_PORT = "server_port"


# ============================================================================
# Logging
# ============================================================================

# Upper bound for a single JSON log line before the message is truncated
MAX_LOG_SIZE_BYTES = 256 * 1024
