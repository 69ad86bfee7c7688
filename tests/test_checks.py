import unittest

from fake_probes import FakeProbes, fail, ok, timed_out

from netprecheck.checks.base import CheckContext
from netprecheck.checks.executor import execute_check
from netprecheck.checks.results import CheckStatus
from netprecheck.errors import ProbeFailure, ProbeTimeout
from netprecheck.models import CheckKind, CheckSpec, Target
from netprecheck.probes.parsers import NtpStatus, RouteInfo


def _ctx(timeout_s: float = 5.0) -> CheckContext:
    return CheckContext.with_timeout(timeout_s)


def _node(name: str, address: str) -> Target:
    return Target(name=name, address=address)


class PortCheckTests(unittest.TestCase):
    def test_missing_firewall_ports_are_enumerated(self) -> None:
        spec = CheckSpec(
            id="firewall-ports:master-0",
            kind=CheckKind.PORT_OPEN,
            targets=(_node("master-0", "10.0.0.10"),),
            expected=[6443, 22623, 443],
        )
        probes = FakeProbes(list_open_ports={"master-0": ok(frozenset({6443, 443}))})

        result = execute_check(spec, probes, _ctx())

        self.assertEqual(result.status, CheckStatus.FAIL)
        self.assertEqual(result.data["missing_ports"], [22623])
        self.assertEqual(result.data["targets"][0]["missing_ports"], [22623])
        self.assertIn("22623", result.detail)
        self.assertEqual(result.observed, [443, 6443])

    def test_firewall_ports_parsed_from_firewall_cmd(self) -> None:
        spec = CheckSpec(
            id="firewall-ports:master-0",
            kind=CheckKind.PORT_OPEN,
            targets=(_node("master-0", "10.0.0.10"),),
            expected=[6443, 22623, 443, 30080],
        )
        probes = FakeProbes(
            run_command={
                "master-0:firewall-cmd --list-ports": ok(
                    "6443/tcp 22623/tcp 443/tcp 30000-32767/tcp 4789/udp\n"
                )
            }
        )

        result = execute_check(spec, probes, _ctx())

        self.assertEqual(result.status, CheckStatus.PASS)
        self.assertEqual(result.data["missing_ports"], [])

    def test_reachability_mode_connects_to_each_port(self) -> None:
        spec = CheckSpec(
            id="ports:master-0",
            kind=CheckKind.PORT_OPEN,
            targets=(_node("master-0", "10.0.0.10"),),
            expected=[6443, 22623],
            options={"mode": "reachability"},
        )
        probes = FakeProbes(
            tcp_connect={
                "10.0.0.10:6443": ok(3),
                "10.0.0.10:22623": fail("Connection refused"),
            }
        )

        result = execute_check(spec, probes, _ctx())

        self.assertEqual(result.status, CheckStatus.FAIL)
        self.assertEqual(result.data["missing_ports"], [22623])

    def test_port_check_without_required_ports_is_an_error(self) -> None:
        spec = CheckSpec(
            id="ports:master-0",
            kind=CheckKind.PORT_OPEN,
            targets=(_node("master-0", "10.0.0.10"),),
        )

        result = execute_check(spec, FakeProbes(), _ctx())

        self.assertEqual(result.status, CheckStatus.ERROR)
        self.assertIn("no required ports", result.error)


class MtuCheckTests(unittest.TestCase):
    def test_mismatch_is_reported_per_node(self) -> None:
        spec = CheckSpec(
            id="mtu-consistency",
            kind=CheckKind.MTU_QUERY,
            targets=(_node("A", "10.0.0.1"), _node("B", "10.0.0.2")),
            expected=1500,
        )
        probes = FakeProbes(query_mtu={"A": ok(1500), "B": ok(1400)})

        result = execute_check(spec, probes, _ctx())

        self.assertEqual(result.status, CheckStatus.FAIL)
        self.assertEqual(result.data["mismatched"], ["B"])
        self.assertEqual(result.data["nodes"]["A"], {"mtu": 1500, "status": "pass", "match": True})
        self.assertEqual(result.data["nodes"]["B"], {"mtu": 1400, "status": "fail", "match": False})
        self.assertEqual(result.observed, {"A": 1500, "B": 1400})
        self.assertIn("B: mtu 1400 != expected 1500", result.detail)

    def test_all_nodes_matching_passes(self) -> None:
        spec = CheckSpec(
            id="mtu-consistency",
            kind=CheckKind.MTU_QUERY,
            targets=(_node("A", "10.0.0.1"), _node("B", "10.0.0.2")),
            expected=9000,
            options={"interface": "ens192"},
        )
        probes = FakeProbes(
            run_command={
                "A:cat /sys/class/net/ens192/mtu": ok("9000\n"),
                "B:cat /sys/class/net/ens192/mtu": ok("9000\n"),
            }
        )

        result = execute_check(spec, probes, _ctx())

        self.assertEqual(result.status, CheckStatus.PASS)
        self.assertEqual(result.data["mismatched"], [])

    def test_timeout_on_one_node_makes_check_timeout(self) -> None:
        spec = CheckSpec(
            id="mtu-consistency",
            kind=CheckKind.MTU_QUERY,
            targets=(_node("A", "10.0.0.1"), _node("B", "10.0.0.2")),
            expected=1500,
        )
        probes = FakeProbes(query_mtu={"A": ok(1500), "B": timed_out("ssh 10.0.0.2: timed out after 5s")})

        result = execute_check(spec, probes, _ctx())

        self.assertEqual(result.status, CheckStatus.TIMEOUT)
        self.assertEqual(result.data["nodes"]["A"]["status"], "pass")
        self.assertEqual(result.data["nodes"]["B"]["status"], "timeout")

    def test_non_integer_expected_is_an_error(self) -> None:
        spec = CheckSpec(
            id="mtu-consistency",
            kind=CheckKind.MTU_QUERY,
            targets=(_node("A", "10.0.0.1"),),
            expected="1500",
        )

        result = execute_check(spec, FakeProbes(query_mtu={"A": ok(1500)}), _ctx())

        self.assertEqual(result.status, CheckStatus.ERROR)


class ReachabilityCheckTests(unittest.TestCase):
    def test_ping_success(self) -> None:
        spec = CheckSpec(id="vip-reachability:api", kind=CheckKind.PING, targets=(_node("api-vip", "10.0.0.5"),))

        result = execute_check(spec, FakeProbes(ping={"api-vip": ok(0.42)}), _ctx())

        self.assertEqual(result.status, CheckStatus.PASS)
        self.assertEqual(result.observed, 0.42)

    def test_ping_failure_and_timeout_are_distinct(self) -> None:
        spec = CheckSpec(id="node-reachability:m0", kind=CheckKind.PING, targets=(_node("m0", "10.0.0.10"),))

        failed = execute_check(spec, FakeProbes(ping={"m0": fail("100% packet loss")}), _ctx())
        inconclusive = execute_check(spec, FakeProbes(ping={"m0": timed_out()}), _ctx())

        self.assertEqual(failed.status, CheckStatus.FAIL)
        self.assertIn("unreachable", failed.detail)
        self.assertEqual(inconclusive.status, CheckStatus.TIMEOUT)

    def test_http_default_accepts_2xx_and_3xx(self) -> None:
        url = "https://api.ocp.example.com:6443/readyz"
        spec = CheckSpec(id="endpoint:api", kind=CheckKind.HTTP_GET, targets=(Target(name="api", url=url),))

        self.assertEqual(
            execute_check(spec, FakeProbes(http_get={url: ok(200)}), _ctx()).status, CheckStatus.PASS
        )
        self.assertEqual(
            execute_check(spec, FakeProbes(http_get={url: ok(302)}), _ctx()).status, CheckStatus.PASS
        )
        self.assertEqual(
            execute_check(spec, FakeProbes(http_get={url: ok(503)}), _ctx()).status, CheckStatus.FAIL
        )

    def test_http_expected_status_list(self) -> None:
        url = "https://console.apps.ocp.example.com/"
        spec = CheckSpec(
            id="endpoint:console",
            kind=CheckKind.HTTP_GET,
            targets=(Target(name="console", url=url),),
            expected=[401, 403],
        )

        result = execute_check(spec, FakeProbes(http_get={url: ok(403)}), _ctx())

        self.assertEqual(result.status, CheckStatus.PASS)
        self.assertEqual(result.observed, 403)

    def test_tcp_connect(self) -> None:
        spec = CheckSpec(
            id="bastion-ssh",
            kind=CheckKind.TCP_CONNECT,
            targets=(Target(name="bastion", address="10.0.0.2", port=22),),
        )

        result = execute_check(spec, FakeProbes(tcp_connect={"10.0.0.2:22": ok(4, latency_ms=4)}), _ctx())

        self.assertEqual(result.status, CheckStatus.PASS)

    def test_expired_context_skips_probe_and_times_out(self) -> None:
        spec = CheckSpec(id="node-reachability:m0", kind=CheckKind.PING, targets=(_node("m0", "10.0.0.10"),))
        probes = FakeProbes(ping={"m0": ok(1.0)})
        ctx = _ctx()
        ctx.cancel.set()

        result = execute_check(spec, probes, ctx)

        self.assertEqual(result.status, CheckStatus.TIMEOUT)
        self.assertEqual(probes.calls, [])


class DnsCheckTests(unittest.TestCase):
    def _spec(self, expected=None) -> CheckSpec:
        name = "api.ocp.example.com"
        return CheckSpec(
            id=f"dns:{name}",
            kind=CheckKind.DNS_RESOLVE,
            targets=(Target(name=name, address=name),),
            expected=expected,
        )

    def test_resolution_without_expectation_passes(self) -> None:
        probes = FakeProbes(resolve={"api.ocp.example.com": ok(["10.0.0.5"])})

        result = execute_check(self._spec(), probes, _ctx())

        self.assertEqual(result.status, CheckStatus.PASS)
        self.assertEqual(result.observed, ["10.0.0.5"])

    def test_resolved_address_must_match_expected(self) -> None:
        probes = FakeProbes(resolve={"api.ocp.example.com": ok(["10.0.0.99"])})

        result = execute_check(self._spec(expected=["10.0.0.5"]), probes, _ctx())

        self.assertEqual(result.status, CheckStatus.FAIL)
        self.assertEqual(result.data["targets"][0]["missing_addresses"], ["10.0.0.5"])

    def test_nxdomain_is_fail(self) -> None:
        probes = FakeProbes(resolve={"api.ocp.example.com": fail("NXDOMAIN: api.ocp.example.com")})

        result = execute_check(self._spec(expected=["10.0.0.5"]), probes, _ctx())

        self.assertEqual(result.status, CheckStatus.FAIL)
        self.assertIn("NXDOMAIN", result.detail)


class NtpAndRouteCheckTests(unittest.TestCase):
    def test_ntp_per_node(self) -> None:
        spec = CheckSpec(
            id="time-sync",
            kind=CheckKind.NTP_SYNC,
            targets=(_node("A", "10.0.0.1"), _node("B", "10.0.0.2"), _node("C", "10.0.0.3")),
            options={"max_offset_s": 0.5},
        )
        probes = FakeProbes(
            ntp_status={
                "A": ok(NtpStatus(True, 0.0001, "C0A80001 (ntp1)", "Normal")),
                "B": ok(NtpStatus(True, -2.5, "C0A80001 (ntp1)", "Normal")),
                "C": ok(NtpStatus(False, None, "00000000 ()", "Not synchronised")),
            }
        )

        result = execute_check(spec, probes, _ctx())

        self.assertEqual(result.status, CheckStatus.FAIL)
        statuses = {t["target"]: t["status"] for t in result.data["targets"]}
        self.assertEqual(statuses, {"A": "pass", "B": "fail", "C": "fail"})
        self.assertIn("exceeds 0.5s", result.detail)
        self.assertIn("not synchronized", result.detail)

    def test_route_interface_expectation(self) -> None:
        spec = CheckSpec(
            id="route:api",
            kind=CheckKind.ROUTE_CHECK,
            targets=(_node("api-vip", "10.0.0.5"),),
            expected="ens192",
        )
        probes = FakeProbes(
            run_command={"localhost:ip -o route get 10.0.0.5": ok("10.0.0.5 dev ens224 src 10.0.0.2 uid 0 \\    cache")}
        )

        result = execute_check(spec, probes, _ctx())

        self.assertEqual(result.status, CheckStatus.FAIL)
        self.assertEqual(result.observed["interface"], "ens224")

    def test_route_missing_is_fail(self) -> None:
        spec = CheckSpec(id="route:api", kind=CheckKind.ROUTE_CHECK, targets=(_node("api-vip", "10.0.0.5"),))
        probes = FakeProbes(route_lookup={"10.0.0.5": fail("RTNETLINK answers: Network is unreachable")})

        result = execute_check(spec, probes, _ctx())

        self.assertEqual(result.status, CheckStatus.FAIL)
        self.assertIn("no route to 10.0.0.5", result.detail)

    def test_route_found(self) -> None:
        spec = CheckSpec(id="route:api", kind=CheckKind.ROUTE_CHECK, targets=(_node("api-vip", "10.0.0.5"),))
        probes = FakeProbes(route_lookup={"10.0.0.5": ok(RouteInfo("10.0.0.5", "ens192", "10.0.0.1", "10.0.0.2"))})

        result = execute_check(spec, probes, _ctx())

        self.assertEqual(result.status, CheckStatus.PASS)
        self.assertIn("via 10.0.0.1", result.detail)


class ProbeExceptionTests(unittest.TestCase):
    def test_probe_exceptions_map_to_statuses(self) -> None:
        spec = CheckSpec(id="node-reachability:m0", kind=CheckKind.PING, targets=(_node("m0", "10.0.0.10"),))

        failed = execute_check(spec, FakeProbes(ping={"m0": ProbeFailure("connection refused")}), _ctx())
        inconclusive = execute_check(spec, FakeProbes(ping={"m0": ProbeTimeout("no reply")}), _ctx())

        self.assertEqual(failed.status, CheckStatus.FAIL)
        self.assertEqual(inconclusive.status, CheckStatus.TIMEOUT)

    def test_unexpected_exception_propagates_to_runner(self) -> None:
        spec = CheckSpec(id="node-reachability:m0", kind=CheckKind.PING, targets=(_node("m0", "10.0.0.10"),))

        with self.assertRaises(RuntimeError):
            execute_check(spec, FakeProbes(ping={"m0": RuntimeError("boom")}), _ctx())


if __name__ == "__main__":
    unittest.main()
