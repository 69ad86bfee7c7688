from __future__ import annotations

import os
import socket
import subprocess
import threading
import time
from typing import Sequence

import paramiko

from netprecheck.probes.results import ProbeResult

POLL_INTERVAL_S = 0.05
RECV_BYTES = 32768


def _cancelled(cancel: threading.Event | None) -> bool:
    return cancel is not None and cancel.is_set()


def _wait(cancel: threading.Event | None, seconds: float) -> None:
    if cancel is not None:
        cancel.wait(seconds)
    else:
        time.sleep(seconds)


def _drain(channel, out: list[bytes], err: list[bytes]) -> bool:
    # keeps the remote side from blocking on a full channel window
    received = False
    while channel.recv_ready():
        out.append(channel.recv(RECV_BYTES))
        received = True
    while channel.recv_stderr_ready():
        err.append(channel.recv_stderr(RECV_BYTES))
        received = True
    return received


def run_local(
    argv: Sequence[str],
    timeout_s: float,
    cancel: threading.Event | None = None,
) -> ProbeResult:
    """Run a command on this host. The child is killed and reaped on timeout or cancel."""
    start = time.perf_counter()
    deadline = start + timeout_s
    if _cancelled(cancel):
        return ProbeResult(ok=False, latency_ms=0, error="cancelled", timed_out=True)
    try:
        proc = subprocess.Popen(
            list(argv),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
        )
    except OSError as e:
        latency_ms = int((time.perf_counter() - start) * 1000)
        return ProbeResult(ok=False, latency_ms=latency_ms, error=f"{argv[0]}: {e}")

    with proc:
        while True:
            try:
                stdout, stderr = proc.communicate(timeout=POLL_INTERVAL_S)
                break
            except subprocess.TimeoutExpired:
                if _cancelled(cancel) or time.perf_counter() >= deadline:
                    proc.kill()
                    proc.communicate()
                    latency_ms = int((time.perf_counter() - start) * 1000)
                    reason = "cancelled" if _cancelled(cancel) else f"timed out after {timeout_s}s"
                    return ProbeResult(
                        ok=False,
                        latency_ms=latency_ms,
                        error=f"{argv[0]} {reason}",
                        timed_out=True,
                    )

    latency_ms = int((time.perf_counter() - start) * 1000)
    if proc.returncode != 0:
        detail = (stderr or stdout or "").strip() or f"exit status {proc.returncode}"
        return ProbeResult(ok=False, latency_ms=latency_ms, value=stdout, error=detail)
    return ProbeResult(ok=True, latency_ms=latency_ms, value=stdout)


def run_ssh(
    host: str,
    command: str,
    *,
    timeout_s: float,
    user: str,
    port: int = 22,
    key_filename: str | None = None,
    allow_agent: bool = True,
    strict_host_keys: bool = False,
    cancel: threading.Event | None = None,
) -> ProbeResult:
    """Run a command over SSH. The session is closed on every exit path."""
    start = time.perf_counter()
    deadline = start + timeout_s
    if _cancelled(cancel):
        return ProbeResult(ok=False, latency_ms=0, error="cancelled", timed_out=True)

    if key_filename:
        key_filename = os.path.expanduser(key_filename)

    try:
        with paramiko.SSHClient() as client:
            if strict_host_keys:
                client.load_system_host_keys()
                client.set_missing_host_key_policy(paramiko.RejectPolicy())
            else:
                client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
            client.connect(
                hostname=host,
                port=port,
                username=user,
                key_filename=key_filename,
                timeout=timeout_s,
                banner_timeout=timeout_s,
                auth_timeout=timeout_s,
                allow_agent=allow_agent,
                look_for_keys=key_filename is None,
            )
            remaining = max(deadline - time.perf_counter(), POLL_INTERVAL_S)
            _, stdout, stderr = client.exec_command(command, timeout=remaining)
            channel = stdout.channel
            out_chunks: list[bytes] = []
            err_chunks: list[bytes] = []
            while not channel.exit_status_ready():
                if _cancelled(cancel) or time.perf_counter() >= deadline:
                    latency_ms = int((time.perf_counter() - start) * 1000)
                    reason = "cancelled" if _cancelled(cancel) else f"timed out after {timeout_s}s"
                    return ProbeResult(
                        ok=False,
                        latency_ms=latency_ms,
                        error=f"ssh {host}: {reason}",
                        timed_out=True,
                    )
                if not _drain(channel, out_chunks, err_chunks):
                    _wait(cancel, POLL_INTERVAL_S)

            exit_status = channel.recv_exit_status()
            out_chunks.append(stdout.read())
            err_chunks.append(stderr.read())
            out = b"".join(out_chunks).decode("utf-8", errors="replace")
            err = b"".join(err_chunks).decode("utf-8", errors="replace")
    except socket.timeout:
        latency_ms = int((time.perf_counter() - start) * 1000)
        return ProbeResult(
            ok=False,
            latency_ms=latency_ms,
            error=f"ssh {host}: timed out after {timeout_s}s",
            timed_out=True,
        )
    except paramiko.AuthenticationException as e:
        latency_ms = int((time.perf_counter() - start) * 1000)
        return ProbeResult(ok=False, latency_ms=latency_ms, error=f"ssh {host}: authentication failed: {e}")
    except (paramiko.SSHException, OSError) as e:
        latency_ms = int((time.perf_counter() - start) * 1000)
        return ProbeResult(
            ok=False,
            latency_ms=latency_ms,
            error=f"ssh {host}: {e.__class__.__name__}: {e}",
        )

    latency_ms = int((time.perf_counter() - start) * 1000)
    if exit_status != 0:
        detail = err.strip() or out.strip() or f"exit status {exit_status}"
        return ProbeResult(ok=False, latency_ms=latency_ms, value=out, error=f"ssh {host}: {detail}")
    return ProbeResult(ok=True, latency_ms=latency_ms, value=out)
