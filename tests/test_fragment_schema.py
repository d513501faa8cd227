import copy
import json
from pathlib import Path

import pytest

from gradlepatch.patching.fragments import Anchor
from gradlepatch.validation.fragment_schema import (
    FragmentSetError,
    fragments_from_payload,
    load_fragment_set,
    load_schema,
    load_version_sets,
    schema_path,
    validate_fragment_payload,
)

FIXTURE = Path(__file__).resolve().parent / "fixtures" / "fragment_set.json"


def _payload() -> dict:
    return json.loads(FIXTURE.read_text(encoding="utf-8"))


def test_schema_file_ships_with_package() -> None:
    assert schema_path().is_file()
    assert load_schema()["title"] == "fragment_set/1.0"


def test_load_fixture() -> None:
    fs = load_fragment_set(FIXTURE)
    assert fs.markers == ["// [Studio] Core", "// [Studio] Pins"]
    pins = fs.get("// [Studio] Pins")
    assert pins.anchor == Anchor.end_of_file()
    assert pins.block == "configurations.all"
    assert pins.after == ("// [Studio] Core",)
    assert fs.get("// [Studio] Core").anchor == Anchor.block_named("dependencies")


def test_version_set_names_are_lowercased() -> None:
    sets = load_version_sets(FIXTURE)
    assert sorted(sets) == ["next", "stable"]
    assert sets["stable"]["core"] == "1.0"


@pytest.mark.parametrize(
    "mutate, where",
    [
        (lambda p: p.update(contract="fragment_set/0.9"), "contract"),
        (lambda p: p["fragments"][0].pop("anchor"), "fragments/0"),
        (lambda p: p["fragments"][0]["anchor"].pop("block"), "fragments/0/anchor"),
        (lambda p: p["fragments"][1]["anchor"].update(kind="middle"), "fragments/1/anchor/kind"),
        (lambda p: p["fragments"][0].update(marker="two\nlines"), "fragments/0/marker"),
        (lambda p: p.update(fragments=[]), "fragments"),
        (lambda p: p["version_sets"].update(bad={}), "version_sets/bad"),
        (lambda p: p.update(extra=True), "<root>"),
    ],
)
def test_schema_rejects(mutate, where: str) -> None:
    payload = copy.deepcopy(_payload())
    mutate(payload)
    with pytest.raises(FragmentSetError) as exc:
        validate_fragment_payload(payload)
    assert str(exc.value).startswith(where + ":")


def test_schema_valid_but_inconsistent_set_rejected() -> None:
    payload = _payload()
    payload["fragments"][1]["marker"] = payload["fragments"][0]["marker"]
    with pytest.raises(FragmentSetError, match="duplicate fragment marker"):
        fragments_from_payload(payload)


def test_invalid_json(tmp_path: Path) -> None:
    bad = tmp_path / "fragments.json"
    bad.write_text("{not json", encoding="utf-8")
    with pytest.raises(FragmentSetError, match="invalid json"):
        load_fragment_set(bad)
