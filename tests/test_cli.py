import io
import json
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from unittest.mock import patch

from fake_probes import FakeProbes, fail, ok

from netprecheck.cli import EXIT_BAD_CONFIG, EXIT_CHECKS_FAILED, EXIT_CRASHED, EXIT_PASS, main

CONFIG_YAML = """\
nodes:
  - {name: master-0, address: 10.0.0.10}
  - {name: master-1, address: 10.0.0.11}
check_time_sync: false
global_timeout: 5s
"""


class CliTests(unittest.TestCase):
    def setUp(self) -> None:
        td = tempfile.TemporaryDirectory()
        self.addCleanup(td.cleanup)
        self.dir = Path(td.name)
        self.config_path = self.dir / "precheck.yml"
        self.config_path.write_text(CONFIG_YAML)

    def _main(self, argv: list[str], probes: FakeProbes | None = None) -> tuple[int, str]:
        out = io.StringIO()
        with patch("netprecheck.service.SystemProbes", return_value=probes or FakeProbes()), redirect_stdout(out):
            code = main(argv)
        return code, out.getvalue()

    def test_all_checks_pass(self) -> None:
        probes = FakeProbes(ping={"master-0": ok(0.3), "master-1": ok(0.5)})

        code, out = self._main([str(self.config_path)], probes)

        self.assertEqual(code, EXIT_PASS)
        self.assertIn("[PASS]", out)
        self.assertIn("Overall: PASS - 2/2 passed", out)

    def test_failed_check_exit_code(self) -> None:
        probes = FakeProbes(ping={"master-0": ok(0.3), "master-1": fail("100% packet loss")})

        code, out = self._main([str(self.config_path)], probes)

        self.assertEqual(code, EXIT_CHECKS_FAILED)
        self.assertIn("[FAIL]", out)

    def test_missing_config_exit_code(self) -> None:
        code, out = self._main([str(self.dir / "missing.yml")])

        self.assertEqual(code, EXIT_BAD_CONFIG)
        self.assertEqual(out, "")

    def test_invalid_run_parameters_rejected_before_loading_config(self) -> None:
        for flag, value in [("--max-parallel", "0"), ("--global-timeout", "-5")]:
            with self.subTest(flag=flag), redirect_stderr(io.StringIO()):
                with self.assertRaises(SystemExit) as ctx:
                    main([str(self.config_path), flag, value])
                self.assertEqual(ctx.exception.code, EXIT_BAD_CONFIG)

    def test_invalid_parallelism_from_environment_exit_code(self) -> None:
        with patch("netprecheck.service.settings.PRECHECK_MAX_PARALLEL", 0):
            code, out = self._main([str(self.config_path)])

        self.assertEqual(code, EXIT_BAD_CONFIG)
        self.assertEqual(out, "")

    def test_internal_value_error_is_a_crash(self) -> None:
        with patch("netprecheck.cli.run_precheck", side_effect=ValueError("bad aggregate")):
            code, _ = self._main([str(self.config_path)])

        self.assertEqual(code, EXIT_CRASHED)

    def test_runner_crash_exit_code(self) -> None:
        with patch("netprecheck.cli.run_precheck", side_effect=RuntimeError("boom")):
            code, _ = self._main([str(self.config_path)])

        self.assertEqual(code, EXIT_CRASHED)

    def test_list_prints_checks_without_running(self) -> None:
        probes = FakeProbes()

        code, out = self._main([str(self.config_path), "--list", "--only", "node-reachability:master-1"], probes)

        self.assertEqual(code, EXIT_PASS)
        self.assertEqual(out.strip(), "node-reachability:master-1\tping\t10.0.0.11")
        self.assertEqual(probes.calls, [])

    def test_list_with_unmatched_filter_exit_code(self) -> None:
        code, out = self._main([str(self.config_path), "--list", "--only", "nothing-here"])

        self.assertEqual(code, EXIT_BAD_CONFIG)
        self.assertEqual(out, "")

    def test_json_report_written_to_file(self) -> None:
        probes = FakeProbes(ping={"master-0": ok(0.3), "master-1": ok(0.5)})
        output = self.dir / "report.json"

        code, out = self._main(
            [str(self.config_path), "--format", "json", "--output", str(output)], probes
        )

        self.assertEqual(code, EXIT_PASS)
        self.assertEqual(out, "")
        report = json.loads(output.read_text())
        self.assertEqual(report["status"], "pass")
        self.assertEqual([r["id"] for r in report["results"]], ["node-reachability:master-0", "node-reachability:master-1"])


if __name__ == "__main__":
    unittest.main()
