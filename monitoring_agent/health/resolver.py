"""Host-name resolution adapter.

``lookup_host`` never raises: every outcome is either ``Resolved`` with at
least one address or ``Unresolved`` with a reason.
"""

from __future__ import annotations

import socket
from collections.abc import Callable
from dataclasses import dataclass


@dataclass(frozen=True)
class Resolved:
    addresses: tuple[str, ...]


@dataclass(frozen=True)
class Unresolved:
    reason: str


Resolution = Resolved | Unresolved

Resolver = Callable[[str], Resolution]


def lookup_host(hostname: str) -> Resolution:
    """Resolve ``hostname`` to its addresses using the system resolver."""
    if not hostname:
        return Unresolved("lookup: empty hostname")

    try:
        infos = socket.getaddrinfo(hostname, None)
    except socket.gaierror as e:
        return Unresolved(f"lookup {hostname}: {e.strerror or e}")
    except (OSError, UnicodeError) as e:
        # UnicodeError comes from IDNA encoding, e.g. a label over 63 chars
        return Unresolved(f"lookup {hostname}: {type(e).__name__}: {e}")

    # getaddrinfo repeats each address once per socket type
    addresses = tuple(dict.fromkeys(str(info[4][0]) for info in infos))
    if not addresses:
        return Unresolved(f"lookup {hostname}: no addresses found")
    return Resolved(addresses)
