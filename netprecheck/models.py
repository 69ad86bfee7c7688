from __future__ import annotations

import re
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field, field_validator, model_validator


class CheckKind(str, Enum):
    PING = "ping"
    DNS_RESOLVE = "dns_resolve"
    TCP_CONNECT = "tcp_connect"
    HTTP_GET = "http_get"
    PORT_OPEN = "port_open"
    MTU_QUERY = "mtu_query"
    NTP_SYNC = "ntp_sync"
    ROUTE_CHECK = "route_check"


_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h)?\s*$")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(value: Any) -> Optional[float]:
    """Accept plain seconds (int/float) or strings such as "90s", "2m", "500ms"."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    match = _DURATION_RE.match(str(value))
    if not match:
        raise ValueError(f"invalid duration: {value!r}")
    amount, unit = match.groups()
    return float(amount) * _DURATION_UNITS[unit or "s"]


class Target(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    address: Optional[str] = None
    port: Optional[int] = Field(default=None, ge=1, le=65535)
    url: Optional[str] = None
    local: bool = False

    @model_validator(mode="before")
    @classmethod
    def _default_name(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"name": data, "address": data}
        if isinstance(data, dict) and not data.get("name"):
            data = dict(data)
            data["name"] = data.get("address") or data.get("url") or ""
        return data

    @model_validator(mode="after")
    def _require_address_or_url(self) -> "Target":
        if not self.address and not self.url:
            raise ValueError(f"target {self.name!r} needs an address or a url")
        return self

    def describe(self) -> str:
        if self.url:
            return self.url
        if self.port is not None:
            return f"{self.address}:{self.port}"
        return self.address or self.name


# kinds whose targets must carry a specific field
_TARGET_REQUIREMENTS: Dict[CheckKind, str] = {
    CheckKind.PING: "address",
    CheckKind.DNS_RESOLVE: "address",
    CheckKind.TCP_CONNECT: "port",
    CheckKind.HTTP_GET: "url",
    CheckKind.PORT_OPEN: "address",
    CheckKind.MTU_QUERY: "address",
    CheckKind.NTP_SYNC: "address",
    CheckKind.ROUTE_CHECK: "address",
}


class CheckSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    kind: CheckKind
    targets: tuple[Target, ...] = Field(..., min_length=1)
    expected: Any = None
    timeout_s: Optional[float] = Field(default=None, gt=0)
    retries: Optional[int] = Field(default=None, ge=0)
    options: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("timeout_s", mode="before")
    @classmethod
    def _parse_timeout(cls, value: Any) -> Optional[float]:
        return parse_duration(value)

    @model_validator(mode="after")
    def _targets_fit_kind(self) -> "CheckSpec":
        required = _TARGET_REQUIREMENTS[self.kind]
        for target in self.targets:
            if getattr(target, required) in (None, ""):
                raise ValueError(
                    f"check {self.id!r} ({self.kind.value}) target {target.name!r} is missing {required}"
                )
            if self.kind == CheckKind.TCP_CONNECT and not target.address:
                raise ValueError(f"check {self.id!r} target {target.name!r} is missing address")
        return self


class Defaults(BaseModel):
    timeout_s: Optional[float] = Field(default=None, gt=0)
    retries: int = Field(default=0, ge=0)

    @field_validator("timeout_s", mode="before")
    @classmethod
    def _parse_timeout(cls, value: Any) -> Optional[float]:
        return parse_duration(value)


class Node(BaseModel):
    name: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    local: bool = False
    interface: Optional[str] = None

    def to_target(self) -> Target:
        return Target(name=self.name, address=self.address, local=self.local)


class Vips(BaseModel):
    api: Optional[str] = None
    ingress: Optional[str] = None


class DnsName(BaseModel):
    name: str = Field(..., min_length=1)
    expected: List[str] = Field(default_factory=list)
    record_type: Literal["A", "AAAA"] = "A"


class Endpoint(BaseModel):
    name: str = Field(..., min_length=1)
    url: AnyHttpUrl
    expected_status: List[int] = Field(default_factory=list)


class SshSettings(BaseModel):
    user: str = "core"
    port: int = Field(default=22, ge=1, le=65535)
    key_filename: Optional[str] = None
    allow_agent: bool = True
    strict_host_keys: bool = False


class PrecheckConfig(BaseModel):
    cluster_name: Optional[str] = None
    base_domain: Optional[str] = None
    nodes: List[Node] = Field(default_factory=list)
    vips: Vips = Vips()
    dns_names: List[DnsName] = Field(default_factory=list)
    derive_dns_names: bool = True
    required_ports: List[int] = Field(default_factory=list)
    port_protocol: Literal["tcp", "udp"] = "tcp"
    port_check_mode: Literal["firewall", "reachability"] = "firewall"
    expected_mtu: Optional[int] = Field(default=None, ge=68, le=65536)
    mtu_interface: Optional[str] = None
    check_time_sync: bool = True
    ntp_max_offset_s: float = Field(default=1.0, gt=0)
    endpoints: List[Endpoint] = Field(default_factory=list)
    verify_tls: bool = False
    global_timeout: Optional[float] = Field(default=None, gt=0)
    max_parallel: Optional[int] = Field(default=None, ge=1)
    defaults: Defaults = Defaults()
    ssh: SshSettings = SshSettings()
    checks: List[CheckSpec] = Field(default_factory=list)

    @field_validator("dns_names", mode="before")
    @classmethod
    def _coerce_dns_names(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return value
        return [{"name": item} if isinstance(item, str) else item for item in value]

    @field_validator("required_ports")
    @classmethod
    def _valid_ports(cls, value: List[int]) -> List[int]:
        for port in value:
            if not 1 <= port <= 65535:
                raise ValueError(f"port out of range: {port}")
        return value

    @field_validator("global_timeout", mode="before")
    @classmethod
    def _parse_global_timeout(cls, value: Any) -> Optional[float]:
        return parse_duration(value)

    @property
    def cluster_domain(self) -> Optional[str]:
        if self.cluster_name and self.base_domain:
            return f"{self.cluster_name}.{self.base_domain}"
        return None
