from pathlib import Path
from typing import Dict, List, Optional

import pytest

from twbuild.core.errors import BuildTimeout
from twbuild.core.execution.runner import CommandResult, CommandRunner
from twbuild.core.observability.metrics import reset_metrics


LEGACY_PACKAGE_JSON = """{
  "name": "tailwindcss-standalone",
  "version": "0.0.0",
  "scripts": {
    "build": "pkg . --compress Brotli --no-bytecode --public-packages \\"*\\" --public"
  },
  "devDependencies": {
    "@tailwindcss/aspect-ratio": "^0.4.0",
    "pkg": "^5.8.0"
  }
}
"""

STANDALONE_JS = """const Module = require('module')
const origRequire = Module.prototype.require

let localModules = {
  'tailwindcss/colors': require('tailwindcss/colors'),
  '@tailwindcss/aspect-ratio': require('@tailwindcss/aspect-ratio'),
}

Module.prototype.require = function (id) {
  if (localModules.hasOwnProperty(id)) {
    return localModules[id]
  }
  return origRequire.apply(this, arguments)
}
"""

MODERN_PACKAGE_JSON = """{
  "name": "@tailwindcss/standalone",
  "version": "4.1.11",
  "private": true,
  "scripts": {
    "build": "bun ./scripts/build.ts"
  },
  "dependencies": {
    "@tailwindcss/aspect-ratio": "^0.4.2",
    "@tailwindcss/forms": "^0.5.10",
    "tailwindcss": "workspace:*"
  }
}
"""

INDEX_TS = """import fs from 'node:fs'

const localResolve = (id: string) => {
  if (
    id.startsWith('tailwindcss/') ||
    id.startsWith('@tailwindcss/') ||
    id === 'tailwindcss'
  ) {
    return id
  }

  switch (id) {
    case 'tailwindcss':
      return id
  }
}

function localRequire(id: string) {
  if (/(\\/)?@tailwindcss\\/forms(\\/.+)?$/.test(id)) {
    return require('@tailwindcss/forms')
  } else if (/(\\/)?@tailwindcss\\/aspect-ratio(\\/.+)?$/.test(id)) {
    return require('@tailwindcss/aspect-ratio')
  } else if (/\\/tailwindcss\\/package\\.json$/.test(id)) {
    return require('tailwindcss/package.json')
  }
}

const bundled = {
  'tailwindcss/defaultTheme.js': await import('tailwindcss/defaultTheme'),
  'tailwindcss/colors.js': await import('tailwindcss/colors'),
}
"""


@pytest.fixture(autouse=True)
def _reset_counters():
    reset_metrics()
    yield
    reset_metrics()


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


@pytest.fixture()
def legacy_tree(tmp_path: Path):
    """<tmp>/src/tailwindcss-3.4.17/standalone-cli with package.json + standalone.js"""

    def _make(version: str = "3.4.17", *, package_json: str = LEGACY_PACKAGE_JSON) -> Path:
        root = tmp_path / "src"
        base = root / f"tailwindcss-{version}"
        _write(base / "package.json", '{"name": "tailwindcss", "private": true}\n')
        _write(base / "standalone-cli" / "package.json", package_json)
        _write(base / "standalone-cli" / "standalone.js", STANDALONE_JS)
        return root

    return _make


@pytest.fixture()
def modern_tree(tmp_path: Path):
    """<tmp>/src/tailwindcss-4.1.11/packages/@tailwindcss-standalone with package.json + src/index.ts"""

    def _make(version: str = "4.1.11", *, index_ts: str = INDEX_TS) -> Path:
        root = tmp_path / "src"
        base = root / f"tailwindcss-{version}"
        standalone = base / "packages" / "@tailwindcss-standalone"
        _write(base / "package.json", '{"name": "tailwindcss-root", "private": true}\n')
        _write(standalone / "package.json", MODERN_PACKAGE_JSON)
        _write(standalone / "src" / "index.ts", index_ts)
        return root

    return _make


class FakeRunner(CommandRunner):
    """Records steps instead of spawning; writes dist binaries on the last build step."""

    name = "fake"

    def __init__(
        self,
        *,
        exit_codes: Optional[Dict[str, int]] = None,
        timeout_on: Optional[str] = None,
        binaries: Optional[List[str]] = None,
    ):
        self.exit_codes = dict(exit_codes or {})
        self.timeout_on = timeout_on
        self.binaries = list(binaries or [])
        self.calls: List[tuple] = []

    def run(self, step, *, timeout_seconds, env=None):
        self.calls.append((step.name, tuple(step.argv), Path(step.cwd)))
        if step.name == self.timeout_on:
            raise BuildTimeout(step.name, timeout_seconds, "partial output")
        code = self.exit_codes.get(step.name, 0)
        if code == 0 and step.name == "standalone_build":
            dist = Path(step.cwd) / "dist"
            dist.mkdir(parents=True, exist_ok=True)
            for b in self.binaries:
                p = dist / b
                p.write_bytes(b"\x7fELF fake binary " + b.encode("utf-8"))
                p.chmod(0o755)
        return CommandResult(step=step.name, exit_code=code, output=f"ran {step.name}\n")


@pytest.fixture()
def fake_runner():
    return FakeRunner


@pytest.fixture()
def all_tools():
    return lambda tool: f"/usr/bin/{tool}"
