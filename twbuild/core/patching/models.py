from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from ..errors import ErrorKind, InvalidPluginSpec

_DEP_LINE_RE = re.compile(r'^\s*"(?P<name>[^"\s]+)"\s*:\s*"(?P<range>[^"]*)"\s*$')
_NAME_RE = re.compile(r"^(@[a-z0-9][a-z0-9._-]*/)?[a-z0-9][a-z0-9._-]*$", re.IGNORECASE)
_SUBPATH_RE = re.compile(r"^[A-Za-z0-9._-]+(/[A-Za-z0-9._-]+)*$")


class PluginSpec(BaseModel):
    """A plugin to inject, validated once at construction.

    ``name`` and ``version_range`` are derived from ``dependency_line``
    (``"name": "range"``); passing them explicitly is allowed only if they
    agree with the line.
    """

    model_config = ConfigDict(frozen=True)

    dependency_line: str
    name: str = ""
    version_range: str = ""
    require_statement: Optional[str] = None
    subpaths: Tuple[str, ...] = ()

    @model_validator(mode="before")
    @classmethod
    def _derive_name(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        line = data.get("dependency_line")
        if not isinstance(line, str):
            raise ValueError("dependency_line must be a string")
        m = _DEP_LINE_RE.match(line)
        if m is None:
            raise ValueError(f'dependency_line must look like "name": "range", got {line!r}')
        name, rng = m.group("name"), m.group("range")
        if data.get("name") not in (None, "", name):
            raise ValueError(f"name {data['name']!r} does not match dependency_line")
        out = dict(data)
        out["dependency_line"] = line.strip()
        out["name"] = name
        out["version_range"] = rng
        return out

    @field_validator("name")
    @classmethod
    def _check_name(cls, v: str) -> str:
        if not _NAME_RE.match(v):
            raise ValueError(f"invalid plugin name: {v!r}")
        return v

    @field_validator("require_statement")
    @classmethod
    def _check_statement(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @field_validator("subpaths")
    @classmethod
    def _check_subpaths(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        seen: List[str] = []
        for sp in v:
            sp = sp.strip()
            if not _SUBPATH_RE.match(sp):
                raise ValueError(f"invalid subpath: {sp!r}")
            if sp not in seen:
                seen.append(sp)
        return tuple(seen)

    @classmethod
    def build(
        cls,
        dependency_line: str,
        *,
        require_statement: Optional[str] = None,
        subpaths: Tuple[str, ...] = (),
    ) -> "PluginSpec":
        try:
            return cls(
                dependency_line=dependency_line,
                require_statement=require_statement,
                subpaths=tuple(subpaths),
            )
        except ValidationError as e:
            raise InvalidPluginSpec(
                "Invalid plugin definition",
                details={"dependency_line": dependency_line, "errors": [err["msg"] for err in e.errors()]},
            ) from e

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PluginSpec":
        """Accepts ``{"version": line, "statement": ..., "subpaths": [...]}``.

        ``dependency_line`` / ``require_statement`` are accepted as aliases.
        """
        line = data.get("dependency_line", data.get("version"))
        if not isinstance(line, str):
            raise InvalidPluginSpec("plugin mapping has no dependency line", details={"keys": sorted(data)})
        subpaths = data.get("subpaths") or ()
        if isinstance(subpaths, str):
            subpaths = (subpaths,)
        return cls.build(
            line,
            require_statement=data.get("require_statement", data.get("statement")),
            subpaths=tuple(subpaths),
        )


@dataclass
class SourceFile:
    path: Path
    content: str

    @classmethod
    def read(cls, path: Path) -> "SourceFile":
        # newline="" so that CRLF files come back byte-identical after a write
        with open(path, "r", encoding="utf-8", newline="") as fh:
            return cls(path=Path(path), content=fh.read())


class PatchStatus(str, Enum):
    PATCHED = "PATCHED"
    ALREADY_PATCHED = "ALREADY_PATCHED"
    DEGRADED = "DEGRADED"
    PARTIAL = "PARTIAL"
    FAILED = "FAILED"


_OK_STATUSES = {
    PatchStatus.PATCHED,
    PatchStatus.ALREADY_PATCHED,
    PatchStatus.DEGRADED,
    PatchStatus.PARTIAL,
}


@dataclass
class InsertionOutcome:
    key: str
    status: PatchStatus
    error_kind: Optional[ErrorKind] = None
    detail: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "status": self.status.value,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "detail": self.detail,
        }


@dataclass
class TextPatch:
    """Result of patching in-memory content; ``content`` is None when nothing should be written."""

    status: PatchStatus
    content: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    detail: str = ""
    warnings: List[str] = field(default_factory=list)
    insertions: List[InsertionOutcome] = field(default_factory=list)


@dataclass
class FileOutcome:
    target: str
    path: Path
    status: PatchStatus
    error_kind: Optional[ErrorKind] = None
    detail: str = ""
    warnings: List[str] = field(default_factory=list)
    insertions: List[InsertionOutcome] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status in _OK_STATUSES

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target": self.target,
            "path": str(self.path),
            "status": self.status.value,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "detail": self.detail,
            "warnings": list(self.warnings),
            "insertions": [i.to_dict() for i in self.insertions],
        }


@dataclass
class PatchReport:
    plugin: str
    version: str
    lineage: str
    files: List[FileOutcome] = field(default_factory=list)
    error_kind: Optional[ErrorKind] = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.error_kind is None and all(f.ok for f in self.files)

    @property
    def already_patched(self) -> bool:
        return bool(self.files) and all(f.status == PatchStatus.ALREADY_PATCHED for f in self.files)

    @property
    def first_error(self) -> Optional[FileOutcome]:
        for f in self.files:
            if not f.ok:
                return f
        return None

    @property
    def warnings(self) -> List[str]:
        out: List[str] = []
        for f in self.files:
            out.extend(f.warnings)
        return out

    def status_of(self, target: str) -> Optional[PatchStatus]:
        for f in self.files:
            if f.target == target:
                return f.status
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "plugin": self.plugin,
            "version": self.version,
            "lineage": self.lineage,
            "ok": self.ok,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "detail": self.detail,
            "files": [f.to_dict() for f in self.files],
        }
