import json
from pathlib import Path

import pytest

from locscan.entries import LocEntry, LocTable
from locscan.errors import CatalogFormatError


def _table() -> LocTable:
    return LocTable(
        [
            LocEntry("LabelTest", "This is a label test.", "TestForm.<init>"),
            LocEntry("ButtonTest", "Click me!", "TestForm.<init>"),
            LocEntry("NoText", None, "TestForm.onClick"),
        ]
    )


def test_serialised_layout_uses_message_and_description() -> None:
    payload = json.loads(_table().dumps())

    assert payload["LabelTest"] == {
        "message": "This is a label test.",
        "description": "TestForm.<init>",
    }
    assert payload["NoText"]["message"] is None
    assert list(payload) == ["LabelTest", "ButtonTest", "NoText"]


def test_round_trip_ignores_entry_order(tmp_path: Path) -> None:
    table = _table()
    path = tmp_path / "nested" / "catalog.json"
    table.dump(path)

    reordered = json.loads(path.read_text("utf-8"))
    path.write_text(json.dumps(dict(reversed(list(reordered.items())))), "utf-8")
    loaded = LocTable.load(path)

    assert loaded == table
    assert list(loaded) != list(table)


def test_non_ascii_text_stays_readable() -> None:
    table = LocTable([LocEntry("Umlaut", "Größe")])
    assert "Größe" in table.dumps()


def test_loads_tolerates_missing_fields() -> None:
    table = LocTable.loads('{"A": {"message": "a"}, "B": {}, "C": null}')

    assert table["A"] == LocEntry("A", "a", None)
    assert table["B"].message is None
    assert table["C"].description is None


@pytest.mark.parametrize(
    "text",
    [
        "[]",
        '{"A": "plain"}',
        '{"A": {"message": 3}}',
        '{"": {"message": "x"}}',
        "{not json",
    ],
)
def test_loads_rejects_malformed_catalogs(text: str) -> None:
    with pytest.raises(CatalogFormatError):
        LocTable.loads(text)


def test_add_rejects_duplicate_keys() -> None:
    table = _table()
    with pytest.raises(ValueError):
        table.add(LocEntry("LabelTest", "again"))


def test_entry_requires_key() -> None:
    with pytest.raises(ValueError):
        LocEntry("")


def test_unpaired_surrogate_is_escaped_on_disk(tmp_path: Path) -> None:
    table = LocTable([LocEntry("Broken", "bad \ud800 text", "Form.<init>")])
    path = tmp_path / "Broken_Localizable.json"

    table.dump(path)

    raw = path.read_bytes()
    assert b"\\ud800" in raw
    assert raw.decode("ascii")
    assert LocTable.load(path)["Broken"].message == "bad \ud800 text"
