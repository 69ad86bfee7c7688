from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

import yaml
from pydantic import ValidationError

from netprecheck.errors import ConfigError, DuplicateIdentifierError
from netprecheck.models import CheckKind, CheckSpec, DnsName, PrecheckConfig, Target

logger = logging.getLogger(__name__)


class CheckRegistry:
    """Ordered, id-unique collection of check specs. Read-only once a run starts."""

    def __init__(self, specs: list[CheckSpec] | None = None) -> None:
        self._specs: dict[str, CheckSpec] = {}
        for spec in specs or []:
            self.register(spec)

    def register(self, spec: CheckSpec) -> None:
        if spec.id in self._specs:
            raise DuplicateIdentifierError(spec.id)
        self._specs[spec.id] = spec

    def all(self) -> list[CheckSpec]:
        return list(self._specs.values())

    def get(self, check_id: str) -> CheckSpec | None:
        return self._specs.get(check_id)

    def filtered(self, prefixes: list[str]) -> "CheckRegistry":
        if not prefixes:
            return self
        return CheckRegistry([s for s in self._specs.values() if s.id.startswith(tuple(prefixes))])

    def __len__(self) -> int:
        return len(self._specs)

    def __iter__(self) -> Iterator[CheckSpec]:
        return iter(self.all())

    def __contains__(self, check_id: object) -> bool:
        return check_id in self._specs


def load_config(path: Path | str) -> PrecheckConfig:
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Missing precheck config at {path}")

    try:
        data = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")

    try:
        return PrecheckConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid precheck config {path}: {e}") from e


def _derived_dns_names(config: PrecheckConfig) -> list[DnsName]:
    domain = config.cluster_domain
    if not domain or not config.derive_dns_names:
        return []
    api = [config.vips.api] if config.vips.api else []
    ingress = [config.vips.ingress] if config.vips.ingress else []
    return [
        DnsName(name=f"api.{domain}", expected=api),
        DnsName(name=f"api-int.{domain}", expected=api),
        # any name under *.apps exercises the wildcard record
        DnsName(name=f"test.apps.{domain}", expected=ingress),
    ]


def _derived_endpoints(config: PrecheckConfig) -> list[tuple[str, str]]:
    out = [(e.name, str(e.url)) for e in config.endpoints]
    domain = config.cluster_domain
    if domain:
        names = {name for name, _ in out}
        if "api" not in names:
            out.insert(0, ("api", f"https://api.{domain}:6443/readyz"))
        if "ingress" not in names:
            out.insert(1, ("ingress", f"https://console-openshift-console.apps.{domain}/"))
    return out


def _expected_status(config: PrecheckConfig, name: str) -> list[int]:
    for endpoint in config.endpoints:
        if endpoint.name == name:
            return endpoint.expected_status
    return []


def _standard_specs(config: PrecheckConfig) -> list[CheckSpec]:
    node_targets = [node.to_target() for node in config.nodes]
    specs: list[CheckSpec] = []

    for target in node_targets:
        specs.append(CheckSpec(id=f"node-reachability:{target.name}", kind=CheckKind.PING, targets=(target,)))

    seen_names: set[str] = set()
    for dns_name in [*_derived_dns_names(config), *config.dns_names]:
        if dns_name.name in seen_names:
            continue
        seen_names.add(dns_name.name)
        specs.append(
            CheckSpec(
                id=f"dns:{dns_name.name}",
                kind=CheckKind.DNS_RESOLVE,
                targets=(Target(name=dns_name.name, address=dns_name.name),),
                expected=dns_name.expected or None,
                options={"record_type": dns_name.record_type},
            )
        )

    vips = [("api", config.vips.api), ("ingress", config.vips.ingress)]
    for role, address in vips:
        if address:
            specs.append(
                CheckSpec(
                    id=f"vip-reachability:{role}",
                    kind=CheckKind.PING,
                    targets=(Target(name=f"{role}-vip", address=address),),
                )
            )
    for role, address in vips:
        if address:
            specs.append(
                CheckSpec(
                    id=f"route:{role}",
                    kind=CheckKind.ROUTE_CHECK,
                    targets=(Target(name=f"{role}-vip", address=address),),
                )
            )

    if config.required_ports:
        for target in node_targets:
            specs.append(
                CheckSpec(
                    id=f"firewall-ports:{target.name}",
                    kind=CheckKind.PORT_OPEN,
                    targets=(target,),
                    expected=list(config.required_ports),
                    options={"mode": config.port_check_mode, "protocol": config.port_protocol},
                )
            )

    if node_targets and config.check_time_sync:
        specs.append(
            CheckSpec(
                id="time-sync",
                kind=CheckKind.NTP_SYNC,
                targets=tuple(node_targets),
                options={"max_offset_s": config.ntp_max_offset_s},
            )
        )

    if node_targets and config.expected_mtu is not None:
        specs.append(
            CheckSpec(
                id="mtu-consistency",
                kind=CheckKind.MTU_QUERY,
                targets=tuple(node_targets),
                expected=config.expected_mtu,
                options={
                    "interface": config.mtu_interface,
                    "interfaces": {n.name: n.interface for n in config.nodes if n.interface},
                },
            )
        )

    for name, url in _derived_endpoints(config):
        specs.append(
            CheckSpec(
                id=f"endpoint:{name}",
                kind=CheckKind.HTTP_GET,
                targets=(Target(name=name, url=url),),
                expected=_expected_status(config, name) or None,
                options={"verify_tls": config.verify_tls},
            )
        )

    return specs


def build_registry(config: PrecheckConfig) -> CheckRegistry:
    registry = CheckRegistry()
    try:
        specs = _standard_specs(config)
    except ValidationError as e:
        raise ConfigError(f"Invalid target in config: {e}") from e

    for spec in [*specs, *config.checks]:
        registry.register(spec)

    if not len(registry):
        raise ConfigError("No checks configured: set nodes, vips, dns_names, endpoints or checks")
    logger.info("Built registry with %s checks", len(registry))
    return registry
