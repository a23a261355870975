import stat
import sys

import pytest

from convert_service.conversion import ConversionCapability, ConversionResult

SAMPLE_EPS = b"""%!PS-Adobe-3.0 EPSF-3.0
%%BoundingBox: 0 0 100 100
newpath 10 10 moveto 90 90 lineto stroke
showpage
%%EOF
"""

# Stand-in for the Inkscape CLI: answers --version and wraps the input file
# into a tiny SVG document, echoing the arguments it was called with.
FAKE_INKSCAPE = r"""#!/bin/sh
if [ "$1" = "--version" ]; then
  echo "Inkscape 1.3 (fake)"
  exit 0
fi
out=""
for arg in "$@"; do
  case "$arg" in
    --export-filename=*) out="${arg#--export-filename=}" ;;
  esac
done
{
  printf '<svg xmlns="http://www.w3.org/2000/svg">\n<!-- args:'
  for arg in "$@"; do printf ' %s' "$arg"; done
  printf ' -->\n<desc>'
  cat "$1"
  printf '</desc>\n</svg>\n'
} > "$out"
"""


class StubConverter:
    """In-process converter that records its calls."""

    def __init__(self, source: str, target: str, output: bytes = b"converted", name: str = "stub") -> None:
        self.capability = ConversionCapability(source, target, name=name)
        self.output = output
        self.calls: list[tuple[bytes, dict]] = []

    def supports(self, source: str, target: str) -> bool:
        return self.capability.matches(source, target)

    def describe(self) -> ConversionCapability:
        return self.capability

    def convert(self, data, options=None) -> ConversionResult:
        self.calls.append((data, dict(options or {})))
        return ConversionResult.success(self.output)


@pytest.fixture
def stub_converter():
    return StubConverter


@pytest.fixture
def sample_eps() -> bytes:
    return SAMPLE_EPS


@pytest.fixture
def make_tool(tmp_path):
    """Write an executable shell script and return its path."""
    if sys.platform == "win32":
        pytest.skip("fake tools are POSIX shell scripts")

    def _make(body: str, name: str = "inkscape") -> str:
        bin_dir = tmp_path / "bin"
        bin_dir.mkdir(exist_ok=True)
        path = bin_dir / name
        path.write_text(body, encoding="utf-8")
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return str(path)

    return _make


@pytest.fixture
def fake_inkscape(make_tool) -> str:
    return make_tool(FAKE_INKSCAPE)


@pytest.fixture
def scratch_dir(tmp_path):
    path = tmp_path / "scratch"
    path.mkdir()
    return path
