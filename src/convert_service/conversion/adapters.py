import logging
import shutil
import subprocess
import tempfile
import uuid
from abc import ABC, abstractmethod
from contextlib import ExitStack
from pathlib import Path
from typing import Any, Mapping

from ..config import Settings, is_truthy
from .errors import ConversionFailed, DependencyUnavailable, IOFailure, ProcessingFailed
from .interfaces import ConversionCapability, ConversionResult, Converter
from .registry import ConverterRegistry

logger = logging.getLogger(__name__)

DEFAULT_MAX_OUTPUT_BYTES = 10 * 1024 * 1024
_STDERR_TAIL = 2000


class ExternalToolConverter(Converter, ABC):
    """Converter that shells out to a native command-line tool.

    Each call checks the tool, writes the input into its own scratch
    directory, runs the tool with explicit input and output paths and reads
    the output file back. The scratch directory is removed on every exit path.
    Subclasses declare the capability attributes and build the command line.
    """

    source = ""
    target = ""
    name = ""
    description = ""
    requirements: tuple[str, ...] = ()
    options: tuple[str, ...] = ()
    install_hint = ""
    scratch_prefix = "convert-"

    def __init__(
        self,
        executable: str,
        *,
        timeout: float = 120.0,
        version_timeout: float = 15.0,
        max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES,
        scratch_dir: str | None = None,
    ) -> None:
        self.executable = executable
        self.timeout = timeout
        self.version_timeout = version_timeout
        self.max_output_bytes = max_output_bytes
        self.scratch_dir = scratch_dir
        self._capability = ConversionCapability(
            source=self.source,
            target=self.target,
            name=self.name or type(self).__name__,
            description=self.description,
            requirements=tuple(self.requirements),
            options=tuple(self.options),
        )

    @property
    def label(self) -> str:
        return f"{self._capability.source.upper()} to {self._capability.target.upper()}"

    def supports(self, source: str, target: str) -> bool:
        return self._capability.matches(source, target)

    def describe(self) -> ConversionCapability:
        return self._capability

    @abstractmethod
    def build_command(self, input_path: Path, output_path: Path, options: Mapping[str, Any]) -> list[str]:
        """Argument list for one tool run; no shell is involved."""

    def convert(self, data: bytes, options: Mapping[str, Any] | None = None) -> ConversionResult:
        try:
            output = self._convert(bytes(data), dict(options or {}))
        except ConversionFailed as e:
            logger.warning("%s conversion failed (%s): %s", self.label, e.code, e)
            return ConversionResult.failure(e)
        return ConversionResult.success(output)

    def check_available(self) -> None:
        """Fail fast with DependencyUnavailable when the tool cannot be run."""
        missing = f"{self.executable} is required for {self.label} conversion. {self.install_hint}".strip()
        try:
            proc = subprocess.run(
                [self.executable, "--version"],
                stdin=subprocess.DEVNULL,
                capture_output=True,
                timeout=self.version_timeout,
                check=False,
            )
        except FileNotFoundError as e:
            raise DependencyUnavailable(missing) from e
        except subprocess.TimeoutExpired as e:
            raise DependencyUnavailable(f"{self.executable} did not answer a version query. {missing}") from e
        except OSError as e:
            raise DependencyUnavailable(f"{self.executable} could not be started: {e}. {missing}") from e
        if proc.returncode != 0:
            raise DependencyUnavailable(
                f"{self.executable} --version exited with status {proc.returncode}. {missing}"
            )

    def _convert(self, data: bytes, options: dict[str, Any]) -> bytes:
        self.check_available()
        try:
            scratch = Path(tempfile.mkdtemp(prefix=self.scratch_prefix, dir=self.scratch_dir))
        except OSError as e:
            raise IOFailure(f"{self.label} conversion failed: cannot create scratch directory: {e}") from e
        token = uuid.uuid4().hex
        input_path = scratch / f"input-{token}.{self._capability.source}"
        output_path = scratch / f"output-{token}.{self._capability.target}"
        try:
            try:
                input_path.write_bytes(data)
            except OSError as e:
                raise IOFailure(f"{self.label} conversion failed: cannot write input file: {e}") from e
            command = self.build_command(input_path, output_path, options)
            self._run_tool(command, scratch / f"stdout-{token}.log", scratch / f"stderr-{token}.log")
            return self._read_output(output_path)
        finally:
            self._cleanup(scratch, input_path, output_path)

    def _run_tool(self, command: list[str], stdout_path: Path, stderr_path: Path) -> None:
        logger.debug("Running %s", " ".join(command))
        # Console output goes to files so a chatty tool cannot grow memory.
        with ExitStack() as stack:
            try:
                out = stack.enter_context(stdout_path.open("wb"))
                err = stack.enter_context(stderr_path.open("wb"))
            except OSError as e:
                raise IOFailure(f"{self.label} conversion failed: cannot create log files: {e}") from e
            try:
                proc = subprocess.run(
                    command,
                    stdin=subprocess.DEVNULL,
                    stdout=out,
                    stderr=err,
                    timeout=self.timeout,
                    check=False,
                )
            except FileNotFoundError as e:
                raise DependencyUnavailable(
                    f"{self.executable} is required for {self.label} conversion. {self.install_hint}".strip()
                ) from e
            except subprocess.TimeoutExpired as e:
                raise ProcessingFailed(
                    f"{self.label} conversion failed: {self.executable} did not finish within {self.timeout:g} seconds"
                ) from e
            except OSError as e:
                raise ProcessingFailed(f"{self.label} conversion failed: {e}") from e

        console_bytes = stdout_path.stat().st_size + stderr_path.stat().st_size
        if console_bytes > self.max_output_bytes:
            raise ProcessingFailed(
                f"{self.label} conversion failed: tool output exceeded {self.max_output_bytes} bytes"
            )
        if proc.returncode != 0:
            detail = f"{self.executable} exited with status {proc.returncode}"
            tail = _read_tail(stderr_path) or _read_tail(stdout_path)
            if tail:
                detail = f"{detail}: {tail}"
            raise ProcessingFailed(f"{self.label} conversion failed: {detail}")

    def _read_output(self, output_path: Path) -> bytes:
        try:
            size = output_path.stat().st_size
        except FileNotFoundError as e:
            raise ProcessingFailed(f"{self.label} conversion failed: no output file was produced") from e
        except OSError as e:
            raise IOFailure(f"{self.label} conversion failed: cannot read output file: {e}") from e
        if size == 0:
            raise ProcessingFailed(f"{self.label} conversion failed: output file is empty")
        if size > self.max_output_bytes:
            raise ProcessingFailed(
                f"{self.label} conversion failed: output exceeded {self.max_output_bytes} bytes"
            )
        try:
            return output_path.read_bytes()
        except OSError as e:
            raise IOFailure(f"{self.label} conversion failed: cannot read output file: {e}") from e

    def _cleanup(self, scratch: Path, *paths: Path) -> None:
        for p in paths:
            try:
                p.unlink(missing_ok=True)
            except OSError as e:
                logger.warning("Cleanup error removing %s: %s", p, e)
        try:
            shutil.rmtree(scratch)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Cleanup error removing %s: %s", scratch, e)


def _read_tail(path: Path) -> str:
    try:
        with path.open("rb") as f:
            f.seek(0, 2)
            size = f.tell()
            f.seek(max(0, size - _STDERR_TAIL))
            return f.read().decode("utf-8", errors="replace").strip()
    except OSError:
        return ""


class EpsToSvgConverter(ExternalToolConverter):
    """Converts EPS to SVG with the Inkscape command-line tool (1.0+ syntax)."""

    source = "eps"
    target = "svg"
    name = "EpsToSvgConverter"
    description = "Converts EPS (Encapsulated PostScript) files to SVG format"
    requirements = ("Inkscape (https://inkscape.org/)",)
    options = ("text_to_path", "plain_svg")
    install_hint = "Please install Inkscape: https://inkscape.org/release/"
    scratch_prefix = "eps-converter-"

    def __init__(self, executable: str = "inkscape", **kwargs: Any) -> None:
        super().__init__(executable, **kwargs)

    def build_command(self, input_path: Path, output_path: Path, options: Mapping[str, Any]) -> list[str]:
        command = [
            self.executable,
            str(input_path),
            f"--export-filename={output_path}",
            "--export-type=svg",
        ]
        if is_truthy(options.get("text_to_path", False)):
            command.append("--export-text-to-path")
        if is_truthy(options.get("plain_svg", False)):
            command.append("--export-plain-svg")
        return command


def build_default_registry(settings: Settings | None = None) -> ConverterRegistry:
    """Register every available converter and freeze the registry.

    Registration order decides which converter serves a pair when several
    declare it, so new converters go at the end of this list:

    1. EpsToSvgConverter (eps -> svg, Inkscape)
    """
    settings = settings or Settings.from_env()
    registry = ConverterRegistry()
    registry.register(
        EpsToSvgConverter(
            settings.inkscape_bin,
            timeout=settings.conversion_timeout_sec,
            max_output_bytes=settings.max_output_bytes,
            scratch_dir=settings.scratch_dir,
        )
    )
    registry.freeze()
    return registry
