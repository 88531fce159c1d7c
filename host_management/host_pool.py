"""
Host Pool

This module tracks the ordered candidate hosts of a search application, per
traffic role, together with the recent-failure state of each host.

A host is "down" while less than `down_delay` seconds have passed since its
last failed attempt. The down state is derived from the stored timestamp on
every check, so a host comes back on its own once the delay is over and a
change of `down_delay` applies to the very next check.
"""

import time
import logging
import threading
from enum import Enum
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Any

logger = logging.getLogger(__name__)

DEFAULT_HOST_DOWN_DELAY = 300.0


class HostRole(str, Enum):
    """Traffic role served by a host list."""
    READ = "read"    # Searches, browses, facet value searches
    WRITE = "write"  # Indexing and settings operations


@dataclass(eq=False)
class Host:
    """
    One candidate host.

    `last_failure_at` holds the clock reading of the last failed attempt, or
    None when the host has never failed or succeeded since. Updates go through
    the owning HostPool, which holds the per-host lock while writing it.
    """
    name: str
    role: HostRole
    last_failure_at: Optional[float] = None
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def __str__(self) -> str:
        return self.name


class HostPool:
    """
    Ordered, per-role host lists with failure tracking.

    The pool is owned by one client and shared by all of its concurrent
    requests. Each host is updated under its own lock; there is no lock
    spanning several hosts, so a failing host never blocks bookkeeping for
    the others.

    Example:
        >>> pool = HostPool(read_hosts=["a.example.com", "b.example.com"],
        ...                 write_hosts=["w.example.com"], down_delay=60)
        >>> host = pool.next_candidate(HostRole.READ)
        >>> pool.record_failure(host)
        >>> pool.next_candidate(HostRole.READ).name
        'b.example.com'
    """

    def __init__(
        self,
        read_hosts: Iterable[str] = (),
        write_hosts: Iterable[str] = (),
        down_delay: float = DEFAULT_HOST_DOWN_DELAY,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the host pool.

        Args:
            read_hosts: Host names for read traffic, in retry priority order
            write_hosts: Host names for write traffic, in retry priority order
            down_delay: Seconds a failed host is skipped by candidate selection
            clock: Monotonic time source, in seconds
        """
        self._clock = clock
        self._down_delay = 0.0
        self.down_delay = down_delay
        self._hosts: Dict[HostRole, List[Host]] = {
            HostRole.READ: self._build_hosts(read_hosts, HostRole.READ),
            HostRole.WRITE: self._build_hosts(write_hosts, HostRole.WRITE),
        }

        logger.info(
            f"HostPool initialized: read_hosts={len(self._hosts[HostRole.READ])}, "
            f"write_hosts={len(self._hosts[HostRole.WRITE])}, down_delay={down_delay}s"
        )

    @staticmethod
    def _build_hosts(names: Iterable[str], role: HostRole) -> List[Host]:
        hosts: List[Host] = []
        seen = set()
        for name in names:
            if name in seen:
                # A request never goes to the same host twice.
                logger.warning(f"Duplicate {role.value} host '{name}' ignored")
                continue
            seen.add(name)
            hosts.append(Host(name=name, role=role))
        return hosts

    @property
    def down_delay(self) -> float:
        """Seconds a failed host stays ineligible."""
        return self._down_delay

    @down_delay.setter
    def down_delay(self, value: float) -> None:
        if value < 0:
            raise ValueError("down_delay cannot be negative")
        self._down_delay = float(value)

    def hosts(self, role: HostRole) -> List[Host]:
        """Return every host of a role, in priority order."""
        return list(self._hosts[HostRole(role)])

    def set_hosts(self, role: HostRole, names: Iterable[str]) -> None:
        """
        Replace the host list of a role.

        Failure state is kept for hosts that remain in the list.
        """
        role = HostRole(role)
        previous = {host.name: host for host in self._hosts[role]}
        rebuilt = []
        for host in self._build_hosts(names, role):
            rebuilt.append(previous.get(host.name, host))
        self._hosts[role] = rebuilt
        logger.info(f"HostPool {role.value} hosts replaced: {[h.name for h in rebuilt]}")

    def is_eligible(self, host: Host) -> bool:
        """
        Check whether a host may be tried.

        Returns:
            bool: False while the host's last failure is younger than down_delay
        """
        failed_at = host.last_failure_at
        if failed_at is None:
            return True
        return self._clock() - failed_at >= self._down_delay

    def candidates(self, role: HostRole) -> List[Host]:
        """
        Return the hosts to try for one request, in order.

        Ineligible hosts are skipped. When every host of the role is
        ineligible the full list is returned, so a request still gets a chance
        instead of failing without a single attempt.
        """
        hosts = self._hosts[HostRole(role)]
        eligible = [host for host in hosts if self.is_eligible(host)]
        if eligible:
            return eligible
        if hosts:
            logger.warning(
                f"All {len(hosts)} {HostRole(role).value} hosts are marked down; "
                f"trying all of them"
            )
        return list(hosts)

    def next_candidate(self, role: HostRole) -> Optional[Host]:
        """Return the first host to try for a role, or None if the role has no hosts."""
        candidates = self.candidates(role)
        return candidates[0] if candidates else None

    def record_failure(self, host: Host) -> None:
        """Mark a host as failed now. Other hosts are untouched."""
        with host._lock:
            host.last_failure_at = self._clock()
        logger.debug(f"Host '{host.name}' marked down for {self._down_delay}s")

    def record_success(self, host: Host) -> None:
        """Clear a host's failure marker, making it eligible immediately."""
        with host._lock:
            if host.last_failure_at is not None:
                logger.debug(f"Host '{host.name}' is back up")
            host.last_failure_at = None

    def find(self, name: str) -> Optional[Host]:
        """Look a host up by name across both roles."""
        for role in (HostRole.READ, HostRole.WRITE):
            for host in self._hosts[role]:
                if host.name == name:
                    return host
        return None

    def is_up_or_could_be_retried(self, name: str) -> bool:
        """
        Check a host by name.

        Unknown hosts have no failure history and are reported as up.
        """
        host = self.find(name)
        return host is None or self.is_eligible(host)

    def get_status(self) -> Dict[str, Any]:
        """
        Get a snapshot of the pool for monitoring.

        Returns:
            Dict with the down delay and, per role, each host's name,
            eligibility and seconds since its last failure
        """
        now = self._clock()
        status: Dict[str, Any] = {"down_delay": self._down_delay}
        for role, hosts in self._hosts.items():
            status[role.value] = [
                {
                    "name": host.name,
                    "eligible": self.is_eligible(host),
                    "seconds_since_failure": (
                        None if host.last_failure_at is None
                        else round(now - host.last_failure_at, 3)
                    ),
                }
                for host in hosts
            ]
        return status

    def __repr__(self) -> str:
        return (
            f"HostPool(read={[h.name for h in self._hosts[HostRole.READ]]}, "
            f"write={[h.name for h in self._hosts[HostRole.WRITE]]}, "
            f"down_delay={self._down_delay})"
        )
