from __future__ import annotations

import shlex
import threading
from abc import ABC, abstractmethod

from netprecheck.models import SshSettings, Target
from netprecheck.probes.command import run_local, run_ssh
from netprecheck.probes.dns_probe import run_dns
from netprecheck.probes.http_probe import run_http
from netprecheck.probes.parsers import (
    parse_chrony_tracking,
    parse_firewall_ports,
    parse_ip_route_get,
    parse_mtu,
    parse_ping_rtt,
)
from netprecheck.probes.results import ProbeResult
from netprecheck.probes.tcp_probe import run_tcp

LOCAL_HOST = Target(name="localhost", address="localhost", local=True)

DEFAULT_ROUTE_MTU_COMMAND = (
    "ip -o link show dev \"$(ip -o route show default | awk '{print $5; exit}')\""
)


def _parsed(result: ProbeResult, parser, *args) -> ProbeResult:
    if not result.ok:
        return result
    try:
        value = parser(result.value, *args)
    except ValueError as e:
        return ProbeResult(ok=False, latency_ms=result.latency_ms, error=f"unexpected output: {e}")
    return ProbeResult(ok=True, latency_ms=result.latency_ms, value=value)


class Probes(ABC):
    """Capability interface over the network and system operations a check can use.

    Every operation performs exactly one underlying operation, returns a
    ProbeResult, never retries, and gives up (``timed_out=True``) once
    ``timeout_s`` elapses or ``cancel`` is set.
    """

    @abstractmethod
    def ping(self, target: Target, *, timeout_s: float, cancel: threading.Event | None = None) -> ProbeResult:
        ...

    @abstractmethod
    def resolve(
        self,
        name: str,
        *,
        timeout_s: float,
        cancel: threading.Event | None = None,
        record_type: str = "A",
    ) -> ProbeResult:
        ...

    @abstractmethod
    def tcp_connect(
        self, host: str, port: int, *, timeout_s: float, cancel: threading.Event | None = None
    ) -> ProbeResult:
        ...

    @abstractmethod
    def http_get(
        self,
        url: str,
        *,
        timeout_s: float,
        cancel: threading.Event | None = None,
        verify: bool = True,
    ) -> ProbeResult:
        ...

    @abstractmethod
    def run_command(
        self, target: Target, command: str, *, timeout_s: float, cancel: threading.Event | None = None
    ) -> ProbeResult:
        ...

    def query_mtu(
        self,
        target: Target,
        interface: str | None = None,
        *,
        timeout_s: float,
        cancel: threading.Event | None = None,
    ) -> ProbeResult:
        if interface:
            command = f"cat /sys/class/net/{shlex.quote(interface)}/mtu"
        else:
            command = DEFAULT_ROUTE_MTU_COMMAND
        result = self.run_command(target, command, timeout_s=timeout_s, cancel=cancel)
        return _parsed(result, parse_mtu)

    def list_open_ports(
        self,
        target: Target,
        protocol: str = "tcp",
        *,
        timeout_s: float,
        cancel: threading.Event | None = None,
    ) -> ProbeResult:
        result = self.run_command(target, "firewall-cmd --list-ports", timeout_s=timeout_s, cancel=cancel)
        return _parsed(result, parse_firewall_ports, protocol)

    def ntp_status(
        self, target: Target, *, timeout_s: float, cancel: threading.Event | None = None
    ) -> ProbeResult:
        result = self.run_command(target, "chronyc tracking", timeout_s=timeout_s, cancel=cancel)
        return _parsed(result, parse_chrony_tracking)

    def route_lookup(
        self, address: str, *, timeout_s: float, cancel: threading.Event | None = None
    ) -> ProbeResult:
        command = f"ip -o route get {shlex.quote(address)}"
        result = self.run_command(LOCAL_HOST, command, timeout_s=timeout_s, cancel=cancel)
        return _parsed(result, parse_ip_route_get)


class SystemProbes(Probes):
    def __init__(
        self,
        ssh: SshSettings | None = None,
        *,
        ping_count: int = 2,
        nameservers: list[str] | None = None,
    ) -> None:
        self.ssh = ssh or SshSettings()
        self.ping_count = ping_count
        self.nameservers = nameservers

    def ping(self, target: Target, *, timeout_s: float, cancel: threading.Event | None = None) -> ProbeResult:
        argv = [
            "ping",
            "-n",
            "-c",
            str(self.ping_count),
            "-w",
            str(max(1, int(timeout_s))),
            target.address,
        ]
        result = run_local(argv, timeout_s=timeout_s, cancel=cancel)
        if not result.ok:
            return result
        rtt = parse_ping_rtt(result.value)
        return ProbeResult(
            ok=True,
            latency_ms=result.latency_ms,
            value=rtt if rtt is not None else float(result.latency_ms),
        )

    def resolve(
        self,
        name: str,
        *,
        timeout_s: float,
        cancel: threading.Event | None = None,
        record_type: str = "A",
    ) -> ProbeResult:
        return run_dns(
            name,
            timeout_s=timeout_s,
            record_type=record_type,
            nameservers=self.nameservers,
            cancel=cancel,
        )

    def tcp_connect(
        self, host: str, port: int, *, timeout_s: float, cancel: threading.Event | None = None
    ) -> ProbeResult:
        return run_tcp(host, port, timeout_s=timeout_s, cancel=cancel)

    def http_get(
        self,
        url: str,
        *,
        timeout_s: float,
        cancel: threading.Event | None = None,
        verify: bool = True,
    ) -> ProbeResult:
        return run_http(url, timeout_s=timeout_s, verify=verify, cancel=cancel)

    def run_command(
        self, target: Target, command: str, *, timeout_s: float, cancel: threading.Event | None = None
    ) -> ProbeResult:
        if target.local:
            return run_local(["sh", "-c", command], timeout_s=timeout_s, cancel=cancel)
        return run_ssh(
            target.address,
            command,
            timeout_s=timeout_s,
            user=self.ssh.user,
            port=self.ssh.port,
            key_filename=self.ssh.key_filename,
            allow_agent=self.ssh.allow_agent,
            strict_host_keys=self.ssh.strict_host_keys,
            cancel=cancel,
        )
