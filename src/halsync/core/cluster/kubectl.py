"""
kubectl-based cluster client.

Implements the ClusterClient protocol by driving the kubectl binary:
resources are read and patched as JSON, watches are long-running
``kubectl get --watch`` processes, and commands run through
``kubectl exec``.
"""

from __future__ import annotations

import io
import json
import logging
import math
import shutil
import subprocess
import tarfile
import tempfile
import threading
from collections.abc import Iterable, Iterator
from pathlib import Path, PurePosixPath
from typing import IO, Any

from pydantic import ValidationError

from halsync.core.config.models import ClusterConfig
from halsync.core.errors import ClusterError, ComponentNotFoundError

from .models import Capability, Component, WatchEvent, WatchEventType

logger = logging.getLogger(__name__)


def iter_json_documents(lines: Iterable[str]) -> Iterator[Any]:
    """
    Decode a stream of concatenated JSON documents.

    ``kubectl get --watch -o json`` prints one pretty-printed document per
    event with no separator, so documents are decoded as soon as enough
    lines have accumulated.
    """
    decoder = json.JSONDecoder()
    buffer = ""
    for line in lines:
        buffer += line
        while True:
            stripped = buffer.lstrip()
            if not stripped:
                buffer = ""
                break
            try:
                document, end = decoder.raw_decode(stripped)
            except json.JSONDecodeError:
                buffer = stripped
                break
            yield document
            buffer = stripped[end:]


class KubectlWatch:
    """
    Watch subscription backed by a ``kubectl get --watch`` process.

    stderr is collected by a helper thread while the watch runs so that a
    chatty kubectl can't stall on a full pipe.
    """

    def __init__(self, name: str, process: subprocess.Popen[str]) -> None:
        self.name = name
        self._process = process
        self._stderr: list[str] = []
        self._stderr_reader: threading.Thread | None = None
        if process.stderr is not None:
            self._stderr_reader = threading.Thread(
                target=self._drain_stderr,
                args=(process.stderr,),
                name=f"kubectl-watch-stderr-{name}",
                daemon=True,
            )
            self._stderr_reader.start()

    def _drain_stderr(self, stream: IO[str]) -> None:
        for line in stream:
            self._stderr.append(line)

    @property
    def stderr(self) -> str:
        """stderr collected so far."""
        return "".join(self._stderr)

    def __iter__(self) -> Iterator[WatchEvent]:
        if self._process.stdout is None:
            return
        for document in iter_json_documents(self._process.stdout):
            try:
                event = WatchEvent.from_raw(document)
            except (ValidationError, ValueError) as e:
                yield WatchEvent(
                    type=WatchEventType.ERROR,
                    message=f"unable to decode watch event: {e}",
                )
                return
            logger.debug("Watch event for %s: %s", self.name, event.type.value)
            yield event

        returncode = self._process.wait()
        if returncode not in (0, None):
            if self._stderr_reader is not None:
                self._stderr_reader.join(timeout=5)
            stderr = self.stderr
            yield WatchEvent(
                type=WatchEventType.ERROR,
                message=stderr.strip() or f"kubectl watch exited with code {returncode}",
            )

    def stop(self) -> None:
        if self._process.poll() is not None:
            return
        self._process.terminate()
        try:
            self._process.wait(timeout=5)
        except subprocess.TimeoutExpired:
            self._process.kill()
            self._process.wait()


class KubectlProcess:
    """
    A ``kubectl exec`` process.

    stdout carries the merged remote stdout/stderr decoded as text. When
    stdin is given it is fed to the remote process from a helper thread.
    """

    def __init__(self, process: subprocess.Popen[bytes], stdin: IO[bytes] | None = None) -> None:
        self._process = process
        self.stdout: IO[str] | None = (
            io.TextIOWrapper(process.stdout, encoding="utf-8", errors="replace")
            if process.stdout is not None
            else None
        )
        self._feeder: threading.Thread | None = None
        if stdin is not None:
            self._feeder = threading.Thread(
                target=self._feed,
                args=(stdin,),
                name="kubectl-exec-stdin",
                daemon=True,
            )
            self._feeder.start()

    def _feed(self, stdin: IO[bytes]) -> None:
        pipe = self._process.stdin
        if pipe is None:
            return
        try:
            shutil.copyfileobj(stdin, pipe)
        except BrokenPipeError:
            # The remote side stopped reading; its exit status reports why
            logger.debug("Remote process closed stdin early")
        finally:
            try:
                pipe.close()
            except BrokenPipeError:
                logger.debug("Remote process closed stdin early")

    def wait(self) -> int:
        returncode = self._process.wait()
        if self._feeder is not None:
            self._feeder.join()
        return returncode


class KubectlClient:
    """
    Cluster client driving the kubectl binary.

    Example:
        >>> client = KubectlClient(ClusterConfig(namespace="dev"))
        >>> component = client.get_component("backend")
        >>> component.status.phase
        <ComponentPhase.READY: 'Ready'>
    """

    # Timeout for one-shot kubectl calls (seconds)
    COMMAND_TIMEOUT = 300

    # Extra seconds a watch stays open past the caller's deadline, so the
    # caller's own timer always fires first
    WATCH_GRACE_SECONDS = 5

    def __init__(self, config: ClusterConfig | None = None) -> None:
        self.config = config or ClusterConfig()
        self._namespace = self.config.namespace

    @property
    def namespace(self) -> str:
        """Configured namespace, or the current context's namespace."""
        if self._namespace is None:
            result = self._run_kubectl(
                ["config", "view", "--minify", "-o", "jsonpath={..namespace}"],
                namespaced=False,
                check=False,
            )
            self._namespace = result.stdout.strip() or "default"
            logger.debug("Resolved namespace from kubeconfig: %s", self._namespace)
        return self._namespace

    # =========================================================================
    # Components
    # =========================================================================

    def get_component(self, name: str) -> Component:
        result = self._run_kubectl(
            ["get", self.config.component_resource, name, "-o", "json"],
            check=False,
        )
        if result.returncode != 0:
            self._raise_for(name, result)
        return Component.from_resource(self._parse_json(result.stdout))

    def apply(self, path: Path) -> None:
        self._run_kubectl(["apply", "-f", str(path)])

    def patch_component(self, name: str, patch: dict[str, Any]) -> Component:
        result = self._run_kubectl(
            [
                "patch",
                self.config.component_resource,
                name,
                "--type",
                "merge",
                "-p",
                json.dumps(patch),
                "-o",
                "json",
            ],
            check=False,
        )
        if result.returncode != 0:
            self._raise_for(name, result)
        return Component.from_resource(self._parse_json(result.stdout))

    def watch_component(self, name: str, timeout_seconds: float) -> KubectlWatch:
        request_timeout = math.ceil(timeout_seconds) + self.WATCH_GRACE_SECONDS
        cmd = self._command(
            [
                "get",
                self.config.component_resource,
                "--field-selector",
                f"metadata.name={name}",
                "--watch",
                "--output-watch-events",
                "-o",
                "json",
                f"--request-timeout={request_timeout}s",
            ]
        )
        logger.debug("Starting watch: %s", " ".join(cmd))
        try:
            process = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
            )
        except OSError as e:
            raise ClusterError(f"Unable to watch component {name}: {e}", command=cmd) from e
        return KubectlWatch(name, process)

    # =========================================================================
    # Pods
    # =========================================================================

    def exec(
        self,
        pod: str,
        argv: list[str],
        stdin: IO[bytes] | None = None,
    ) -> KubectlProcess:
        args = ["exec"]
        if stdin is not None:
            args.append("-i")
        cmd = self._command([*args, pod, "--", *argv])
        logger.debug("Running in pod %s: %s", pod, " ".join(argv))
        try:
            process = subprocess.Popen(
                cmd,
                stdin=subprocess.PIPE if stdin is not None else subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
            )
        except OSError as e:
            raise ClusterError(f"Unable to execute command in pod {pod}: {e}", command=cmd) from e
        return KubectlProcess(process, stdin)

    def copy_to_pod(self, source: Path, pod: str, destination: str) -> None:
        if self.config.transfer == "cp":
            self._run_kubectl(["cp", str(source), f"{pod}:{destination}"])
            return

        target = PurePosixPath(destination)
        argv = ["tar", "xf", "-", "-C", str(target.parent)]
        with tempfile.SpooledTemporaryFile(max_size=8 * 1024 * 1024) as payload:
            with tarfile.open(fileobj=payload, mode="w") as tar:
                tar.add(str(source), arcname=target.name)
            payload.seek(0)
            process = self.exec(pod, argv, stdin=payload)
            output = process.stdout.read() if process.stdout else ""
            returncode = process.wait()
        if returncode != 0:
            raise ClusterError(
                f"Upload of {source} to {pod}:{destination} failed",
                command=argv,
                stderr=output,
            )

    def logs(self, pod: str, follow: bool = False) -> KubectlProcess:
        args = ["logs"]
        if follow:
            args.append("-f")
        cmd = self._command([*args, pod])
        logger.debug("Reading logs: %s", " ".join(cmd))
        try:
            process = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
            )
        except OSError as e:
            raise ClusterError(f"Unable to read logs of pod {pod}: {e}", command=cmd) from e
        return KubectlProcess(process)

    # =========================================================================
    # Capabilities
    # =========================================================================

    def list_capabilities(self) -> list[Capability]:
        result = self._run_kubectl(["get", self.config.capability_resource, "-o", "json"])
        items = self._parse_json(result.stdout).get("items") or []
        return [Capability.from_resource(item) for item in items]

    # =========================================================================
    # Private helpers
    # =========================================================================

    def _command(self, args: list[str], namespaced: bool = True) -> list[str]:
        cmd = [self.config.kubectl]
        if self.config.context:
            cmd.extend(["--context", self.config.context])
        if namespaced:
            cmd.extend(["-n", self.namespace])
        return cmd + args

    def _run_kubectl(
        self,
        args: list[str],
        *,
        namespaced: bool = True,
        check: bool = True,
    ) -> subprocess.CompletedProcess[str]:
        """
        Run a kubectl command.

        Args:
            args: kubectl arguments
            namespaced: Scope the command to the client's namespace
            check: Raise ClusterError on non-zero exit code

        Returns:
            CompletedProcess result
        """
        cmd = self._command(args, namespaced=namespaced)
        logger.debug("Running kubectl command: %s", " ".join(cmd))
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.COMMAND_TIMEOUT,
            )
        except subprocess.TimeoutExpired as e:
            raise ClusterError(f"kubectl command timed out: {' '.join(cmd)}", command=cmd) from e
        except FileNotFoundError as e:
            raise ClusterError(f"{self.config.kubectl} not found in PATH", command=cmd) from e

        if check and result.returncode != 0:
            raise ClusterError(
                f"kubectl command failed: {' '.join(cmd)}",
                command=cmd,
                stderr=result.stderr.strip(),
            )
        return result

    def _raise_for(self, name: str, result: subprocess.CompletedProcess[str]) -> None:
        stderr = result.stderr.strip()
        if "NotFound" in stderr or "not found" in stderr:
            raise ComponentNotFoundError(name, self.namespace, stderr=stderr)
        cmd = result.args if isinstance(result.args, list) else None
        raise ClusterError(f"kubectl command failed for component {name}", command=cmd, stderr=stderr)

    def _parse_json(self, raw: str) -> dict[str, Any]:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ClusterError(f"Unexpected kubectl output: {e}") from e
        if not isinstance(data, dict):
            raise ClusterError("Unexpected kubectl output: not a JSON object")
        return data
