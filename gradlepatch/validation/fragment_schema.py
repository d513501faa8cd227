from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional, Union

import jsonschema

from gradlepatch.patching.errors import FragmentDefinitionError
from gradlepatch.patching.fragments import (
    ANCHOR_BLOCK,
    Anchor,
    FragmentSet,
    FragmentSpec,
    TargetVersionSet,
)

PathLike = Union[str, Path]

CONTRACT = "fragment_set/1.0"


class FragmentSetError(ValueError):
    pass


def schema_path() -> Path:
    return Path(__file__).resolve().parent / "schemas" / "fragment_set.schema.json"


def _load_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise FragmentSetError(f"invalid json: {path} ({e})") from e


def load_schema() -> Dict[str, Any]:
    return _load_json(schema_path())


def validate_fragment_payload(payload: Any, *, schema: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Validate a fragment-set payload against fragment_set.schema.json.

    Raises FragmentSetError with the first error (ordered by JSON path so the
    message is deterministic).
    """
    schema = schema if schema is not None else load_schema()
    try:
        validator_cls = jsonschema.validators.validator_for(schema)
        validator_cls.check_schema(schema)
        v = validator_cls(schema)
        errors = sorted(v.iter_errors(payload), key=lambda e: (list(map(str, e.path)), e.message))
    except jsonschema.SchemaError as e:
        raise FragmentSetError(f"invalid schema: {schema_path()} ({e.message})") from e

    if errors:
        first = errors[0]
        where = "/".join(str(p) for p in first.path) or "<root>"
        raise FragmentSetError(f"{where}: {first.message}")
    return payload


def _anchor_from(obj: Dict[str, Any]) -> Anchor:
    if obj["kind"] == ANCHOR_BLOCK:
        return Anchor.block_named(obj["block"])
    return Anchor.end_of_file()


def fragments_from_payload(payload: Dict[str, Any]) -> FragmentSet:
    validate_fragment_payload(payload)
    specs = [
        FragmentSpec(
            marker=f["marker"],
            template=f["template"],
            anchor=_anchor_from(f["anchor"]),
            required=tuple(f.get("required") or ()),
            block=f.get("block") or None,
            after=tuple(f.get("after") or ()),
            description=f.get("description") or "",
        )
        for f in payload["fragments"]
    ]
    try:
        return FragmentSet(specs)
    except FragmentDefinitionError as e:
        raise FragmentSetError(str(e)) from e


def version_sets_from_payload(payload: Dict[str, Any]) -> Dict[str, TargetVersionSet]:
    validate_fragment_payload(payload)
    return {
        name.lower(): TargetVersionSet(name=name.lower(), versions=versions)
        for name, versions in (payload.get("version_sets") or {}).items()
    }


def load_fragment_set(path: PathLike) -> FragmentSet:
    return fragments_from_payload(_load_json(Path(path)))


def load_version_sets(path: PathLike) -> Dict[str, TargetVersionSet]:
    return version_sets_from_payload(_load_json(Path(path)))
