from __future__ import annotations

PORT = 4000
LISTEN_HOST = "0.0.0.0"

DEFAULT_TIMEOUT_MS = 100
BUFSIZE = 1024

FIRST_SEQ = 1
LAST_SEQ = 100
FIN_SEQ = 0  # sentinel carried by every fin message

MAX_U32 = 0xFFFFFFFF
