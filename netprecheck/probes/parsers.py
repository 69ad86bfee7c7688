"""Parsers for the text output of the system tools the probes shell out to."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

_RTT_RE = re.compile(r"=\s*[\d.]+/([\d.]+)/[\d.]+")


def parse_ping_rtt(output: str) -> Optional[float]:
    # "rtt min/avg/max/mdev = 0.041/0.052/0.063/0.011 ms"
    match = _RTT_RE.search(output or "")
    if not match:
        return None
    return float(match.group(1))


def parse_mtu(output: str) -> int:
    text = (output or "").strip()
    if text.isdigit():
        return int(text)
    # `ip -o link show` style: "2: eth0: <...> mtu 1500 qdisc ..."
    match = re.search(r"\bmtu (\d+)\b", text)
    if not match:
        raise ValueError(f"could not find an MTU in {text[:80]!r}")
    return int(match.group(1))


def parse_firewall_ports(output: str, protocol: str = "tcp") -> frozenset[int]:
    """Expand `firewall-cmd --list-ports` output into the set of open ports for one protocol.

    Entries look like ``6443/tcp`` or ``30000-32767/tcp``.
    """
    ports: set[int] = set()
    for token in (output or "").split():
        spec, _, proto = token.partition("/")
        if proto and proto != protocol:
            continue
        start, _, end = spec.partition("-")
        if not start.isdigit() or (end and not end.isdigit()):
            raise ValueError(f"unexpected firewall port entry: {token!r}")
        ports.update(range(int(start), int(end or start) + 1))
    return frozenset(ports)


@dataclass(frozen=True)
class NtpStatus:
    synchronized: bool
    offset_s: Optional[float]
    reference: Optional[str]
    leap_status: Optional[str]

    def to_dict(self) -> dict:
        return {
            "synchronized": self.synchronized,
            "offset_s": self.offset_s,
            "reference": self.reference,
            "leap_status": self.leap_status,
        }


def parse_chrony_tracking(output: str) -> NtpStatus:
    fields: dict[str, str] = {}
    for line in (output or "").splitlines():
        key, sep, value = line.partition(":")
        if sep:
            fields[key.strip().lower()] = value.strip()
    if not fields:
        raise ValueError("empty chronyc tracking output")

    reference = fields.get("reference id")
    leap_status = fields.get("leap status")

    offset_s = None
    # "System time     : 0.000012345 seconds slow of NTP time"
    system_time = fields.get("system time", "")
    match = re.match(r"([-\d.]+) seconds (slow|fast)", system_time)
    if match:
        offset_s = float(match.group(1))
        if match.group(2) == "slow":
            offset_s = -offset_s

    unsynced_ref = reference is None or reference.startswith("00000000") or reference.startswith("7F7F0101")
    synchronized = leap_status == "Normal" and not unsynced_ref
    return NtpStatus(
        synchronized=synchronized,
        offset_s=offset_s,
        reference=reference,
        leap_status=leap_status,
    )


@dataclass(frozen=True)
class RouteInfo:
    destination: str
    interface: Optional[str]
    gateway: Optional[str]
    source: Optional[str]

    def to_dict(self) -> dict:
        return {
            "destination": self.destination,
            "interface": self.interface,
            "gateway": self.gateway,
            "source": self.source,
        }


def parse_ip_route_get(output: str) -> RouteInfo:
    # "10.0.0.5 via 10.0.0.1 dev eth0 src 10.0.0.10 uid 0 \    cache"
    tokens = (output or "").replace("\\", " ").split()
    if not tokens:
        raise ValueError("empty ip route output")
    if tokens[0] in {"local", "broadcast", "unicast"} and len(tokens) > 1:
        tokens = tokens[1:]

    def _after(keyword: str) -> Optional[str]:
        if keyword in tokens:
            idx = tokens.index(keyword)
            if idx + 1 < len(tokens):
                return tokens[idx + 1]
        return None

    return RouteInfo(
        destination=tokens[0],
        interface=_after("dev"),
        gateway=_after("via"),
        source=_after("src"),
    )
