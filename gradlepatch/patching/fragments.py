"""
Fragment definitions.

A fragment is a marker-tagged, version-parameterized chunk of Gradle text
that must exist exactly once in correct form. Templates use string.Template
placeholders (`${guava}`) so Gradle braces need no escaping.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from string import Template
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .errors import FragmentDefinitionError

ANCHOR_BLOCK = "block"
ANCHOR_EOF = "eof"


@dataclass(frozen=True)
class Anchor:
    kind: str  # block | eof
    block: Optional[str] = None

    @staticmethod
    def block_named(name: str) -> "Anchor":
        return Anchor(kind=ANCHOR_BLOCK, block=name)

    @staticmethod
    def end_of_file() -> "Anchor":
        return Anchor(kind=ANCHOR_EOF)

    @property
    def is_block(self) -> bool:
        return self.kind == ANCHOR_BLOCK

    def describe(self) -> str:
        return f"inside '{self.block}' block" if self.is_block else "end of file"


@dataclass(frozen=True)
class TargetVersionSet:
    name: str
    versions: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "versions", MappingProxyType(dict(self.versions)))

    def __getitem__(self, key: str) -> str:
        return self.versions[key]

    def with_overrides(self, overrides: Mapping[str, str]) -> "TargetVersionSet":
        if not overrides:
            return self
        merged = dict(self.versions)
        merged.update(overrides)
        return TargetVersionSet(name=f"{self.name}+overrides", versions=merged)

    def to_dict(self) -> Dict[str, str]:
        return dict(self.versions)


def _substitute(text: str, versions: TargetVersionSet, marker: str) -> str:
    try:
        return Template(text).substitute(versions.versions)
    except KeyError as e:
        raise FragmentDefinitionError(
            f"fragment {marker!r} needs version {e.args[0]!r}, not in set {versions.name!r}"
        ) from e
    except ValueError as e:
        raise FragmentDefinitionError(f"fragment {marker!r} has a bad placeholder: {e}") from e


def _is_brace_only(line: str) -> bool:
    return line.strip() in ("{", "}", "")


@dataclass(frozen=True)
class FragmentSpec:
    marker: str
    template: str
    anchor: Anchor
    required: Tuple[str, ...] = ()
    block: Optional[str] = None  # block the fragment introduces; None = flat declaration lines
    after: Tuple[str, ...] = ()
    description: str = ""

    def render_body(self, versions: TargetVersionSet) -> str:
        return _substitute(self.template, versions, self.marker).strip("\n")

    def render(self, versions: TargetVersionSet) -> str:
        """Marker line plus body, flush-left, no trailing newline."""
        return self.marker + "\n" + self.render_body(versions)

    def required_literals(self, versions: TargetVersionSet) -> List[str]:
        if self.required:
            return [_substitute(r, versions, self.marker) for r in self.required]
        return [ln.strip() for ln in self.render_body(versions).splitlines() if not _is_brace_only(ln)]


class FragmentSet:
    """Ordered, validated collection of FragmentSpecs for one run."""

    def __init__(self, specs: Iterable[FragmentSpec]) -> None:
        self.specs: Tuple[FragmentSpec, ...] = tuple(specs)
        self.validate()

    def __iter__(self):
        return iter(self.specs)

    def __len__(self) -> int:
        return len(self.specs)

    @property
    def markers(self) -> List[str]:
        return [s.marker for s in self.specs]

    def get(self, marker: str) -> FragmentSpec:
        for s in self.specs:
            if s.marker == marker:
                return s
        raise KeyError(marker)

    def validate(self) -> None:
        seen: set[str] = set()
        for s in self.specs:
            if not s.marker.strip():
                raise FragmentDefinitionError("fragment marker must not be blank")
            if "\n" in s.marker:
                raise FragmentDefinitionError(f"fragment marker must be one line: {s.marker!r}")
            if s.marker in seen:
                raise FragmentDefinitionError(f"duplicate fragment marker: {s.marker!r}")
            seen.add(s.marker)
            if s.marker in s.template:
                raise FragmentDefinitionError(f"template of {s.marker!r} contains its own marker")
            if s.anchor.is_block and not (s.anchor.block or "").strip():
                raise FragmentDefinitionError(f"block anchor of {s.marker!r} has no block name")

        for s in self.specs:
            for other in self.specs:
                if other is not s and s.marker in other.marker:
                    raise FragmentDefinitionError(
                        f"marker {s.marker!r} is a substring of marker {other.marker!r}"
                    )
            for dep in s.after:
                if dep not in seen:
                    raise FragmentDefinitionError(f"{s.marker!r} is declared after unknown marker {dep!r}")

        self.injection_order(self.markers)

    def _dependencies(self, spec: FragmentSpec) -> List[str]:
        deps = list(spec.after)
        if spec.anchor.is_block:
            for other in self.specs:
                if other is not spec and other.block == spec.anchor.block and other.marker not in deps:
                    deps.append(other.marker)
        return deps

    def injection_order(self, markers: Sequence[str]) -> List[FragmentSpec]:
        """
        Order `markers` for injection.

        A fragment comes after the fragments it declares in `after` and after
        any fragment that introduces the block it is anchored in. Ties keep
        declaration order.
        """
        wanted_markers = set(markers)
        wanted = [s for s in self.specs if s.marker in wanted_markers]
        done: set[str] = set()
        out: List[FragmentSpec] = []
        pending = list(wanted)
        while pending:
            progressed = False
            for s in list(pending):
                deps = [d for d in self._dependencies(s) if d in wanted_markers]
                if all(d in done for d in deps):
                    out.append(s)
                    done.add(s.marker)
                    pending.remove(s)
                    progressed = True
                    break
            if not progressed:
                names = ", ".join(repr(s.marker) for s in pending)
                raise FragmentDefinitionError(f"fragment ordering cycle between {names}")
        return out


# ---- defaults (Unity mainTemplate.gradle) ----

DEPENDENCY_MARKER = "// [GradlePatch] Dependencies"
RESOLUTION_MARKER = "// [GradlePatch] Conflict Resolution"

DEPENDENCIES_FRAGMENT = FragmentSpec(
    marker=DEPENDENCY_MARKER,
    template=(
        "implementation 'androidx.browser:browser:${browser}'\n"
        "implementation 'androidx.versionedparcelable:versionedparcelable:${versionedparcelable}'\n"
        "implementation 'com.google.guava:guava:${guava}'\n"
        "implementation 'com.google.guava:listenablefuture:${listenablefuture}'\n"
    ),
    anchor=Anchor.block_named("dependencies"),
    description="AndroidX browser + Guava runtime dependencies",
)

RESOLUTION_FRAGMENT = FragmentSpec(
    marker=RESOLUTION_MARKER,
    template=(
        "configurations.all {\n"
        "    resolutionStrategy {\n"
        "        exclude group: 'com.google.guava', module: 'listenablefuture'\n"
        "        force 'androidx.core:core:${androidx_core}'\n"
        "    }\n"
        "}\n"
    ),
    anchor=Anchor.end_of_file(),
    block="configurations.all",
    after=(DEPENDENCY_MARKER,),
    description="duplicate-class conflict resolution",
)

MODERN = TargetVersionSet(
    name="modern",
    versions={
        "browser": "1.8.0",
        "versionedparcelable": "1.1.1",
        "guava": "33.0.0-android",
        "listenablefuture": "9999.0-empty-to-avoid-conflict-with-guava",
        "androidx_core": "1.13.0",
    },
)

LEGACY = TargetVersionSet(
    name="legacy",
    versions={
        "browser": "1.4.0",
        "versionedparcelable": "1.1.1",
        "guava": "31.1-android",
        "listenablefuture": "9999.0-empty-to-avoid-conflict-with-guava",
        "androidx_core": "1.9.0",
    },
)

VERSION_SETS: Dict[str, TargetVersionSet] = {MODERN.name: MODERN, LEGACY.name: LEGACY}


def default_fragments() -> FragmentSet:
    return FragmentSet([DEPENDENCIES_FRAGMENT, RESOLUTION_FRAGMENT])


def select_version_set(
    toolchain: str, available: Optional[Mapping[str, TargetVersionSet]] = None
) -> TargetVersionSet:
    sets = VERSION_SETS if available is None else available
    key = (toolchain or "").strip().lower()
    if key not in sets:
        known = ", ".join(sorted(sets))
        raise ValueError(f"unknown toolchain {toolchain!r} (known: {known})")
    return sets[key]
